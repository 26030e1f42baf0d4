"""CryptoJS-compatible AES helpers for the Bato ``batoWord`` payload.

``CryptoJS.AES.decrypt(text, passphrase)`` expects the OpenSSL envelope
``"Salted__" + salt(8) + ciphertext`` in base64, derives key and IV with the
MD5-based ``EVP_BytesToKey`` and decrypts with AES-256-CBC / PKCS#7.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Tuple

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

_SALT_HEADER = b"Salted__"
_KEY_SIZE = 32
_IV_SIZE = 16


def evp_bytes_to_key(
    passphrase: bytes, salt: bytes, key_size: int = _KEY_SIZE, iv_size: int = _IV_SIZE
) -> Tuple[bytes, bytes]:
    derived = b""
    block = b""
    while len(derived) < key_size + iv_size:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:key_size], derived[key_size : key_size + iv_size]


def cryptojs_decrypt(payload: str, passphrase: str) -> str:
    """Decrypt a CryptoJS passphrase-mode ciphertext.

    Raises ``ValueError`` when the payload is not valid base64, lacks the salt
    header, has a bad block size or padding, or is not UTF-8 once decrypted.
    """
    try:
        raw = base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Payload is not valid base64: {exc}") from exc
    if not raw.startswith(_SALT_HEADER) or len(raw) < 32:
        raise ValueError("Payload is missing the OpenSSL salt header.")
    salt, body = raw[8:16], raw[16:]
    if len(body) % 16:
        raise ValueError("Ciphertext length is not a multiple of the AES block size.")

    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    plain = unpadder.update(padded) + unpadder.finalize()
    return plain.decode("utf-8")


__all__ = ["cryptojs_decrypt", "evp_bytes_to_key"]
