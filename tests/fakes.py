"""Stand-ins for HTTP responses, the proxy and Bato payloads used across the test modules."""
from __future__ import annotations

import base64
import os
from typing import Callable, Dict, List, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from sources import BaseSourceAdapter, DiscoveryError, PageURL, ResolutionError
from sources.bato_crypto import evp_bytes_to_key
from warmer import ForwardingError, ForwardOutcome


class FakeResponse:
    def __init__(self, text: str = "", json_data=None, status_code: int = 200) -> None:
        self.text = text
        self._json = json_data
        self.status_code = status_code

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class RecordingRequester:
    """``make_request`` replacement that records calls and replays responses."""

    def __init__(self, responder: Callable[..., FakeResponse]) -> None:
        self.responder = responder
        self.calls: List[Dict] = []

    def __call__(self, url, scraper, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        return self.responder(url, params)


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAdapter(BaseSourceAdapter):
    name = "weebcentral"

    def __init__(
        self,
        chapters: List[str],
        page_counts: Optional[Dict[str, int]] = None,
        fail_resolve=(),
        fail_listing: bool = False,
    ) -> None:
        super().__init__()
        self.chapters = chapters
        self.page_counts = page_counts or {}
        self.fail_resolve = set(fail_resolve)
        self.fail_listing = fail_listing
        self.opened: List[str] = []
        self.closed: List[str] = []
        self.resolved: List[str] = []

    def open_title(self, manga_id):
        self.opened.append(manga_id)
        return super().open_title(manga_id)

    def close_title(self, context):
        self.closed.append(context.manga_id)

    def list_chapters(self, context, scraper, make_request):
        if self.fail_listing:
            raise DiscoveryError("listing unavailable")
        return list(self.chapters)

    def resolve_pages(self, context, chapter_id, scraper, make_request):
        self.resolved.append(chapter_id)
        if chapter_id in self.fail_resolve:
            raise ResolutionError(f"no images for {chapter_id}")
        count = self.page_counts.get(chapter_id, 3)
        return [PageURL(f"https://img.example/{chapter_id}/{i}.png") for i in range(count)]


class FakeForwarder:
    def __init__(self, failing=(), raising=()) -> None:
        self.failing = set(failing)
        self.raising = set(raising)
        self.forwarded: List[str] = []

    def forward_pages(self, chapter_id, pages):
        self.forwarded.append(chapter_id)
        if chapter_id in self.raising:
            raise ForwardingError("proxy unreachable")
        if chapter_id in self.failing:
            return ForwardOutcome(requests_made=1, failed_images=["bad.png"], chunks_failed=1)
        return ForwardOutcome(requests_made=1)

    def forward_chapter_id(self, chapter_id):
        return self.forward_pages(chapter_id, [])


def cryptojs_encrypt(plaintext: str, passphrase: str, salt: Optional[bytes] = None) -> str:
    """Produce what ``CryptoJS.AES.encrypt(plaintext, passphrase)`` emits."""
    salt = salt if salt is not None else os.urandom(8)
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    body = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(b"Salted__" + salt + body).decode("ascii")
