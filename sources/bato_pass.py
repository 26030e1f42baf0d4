"""Evaluator for the obfuscated ``batoPass`` expression found on Bato chapter pages.

The reader page computes its AES passphrase with a JSFuck-style expression,
e.g. ``(+!![]+[])+(+[])+(![]+[])[+!![]]``. Instead of running the snippet in a
JavaScript engine we parse it with a small grammar and reproduce the
JavaScript type coercions it relies on:

    expr     := additive
    additive := multiplicative (("+" | "-") multiplicative)*
    multiplicative := unary (("*" | "/" | "%") unary)*
    unary    := ("+" | "-" | "!") unary | postfix
    postfix  := primary ("[" expr "]")*
    primary  := NUMBER | STRING | "(" expr ")" | "[" [expr ("," expr)*] "]"

Identifiers, calls, named property access and every other construct are
rejected with :class:`ExpressionError`.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import List, Tuple, Union

MAX_EXPRESSION_LENGTH = 20000


class ExpressionError(ValueError):
    """The expression is malformed or uses an unsupported construct."""


class _Undefined:
    def __repr__(self) -> str:
        return "undefined"


UNDEFINED = _Undefined()

# Arrays are represented as tuples so they never compare equal to strings.
JSValue = Union[float, str, bool, tuple, _Undefined]

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
  | (?P<punct>[()\[\],+\-*/%!])
    """,
    re.VERBOSE,
)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", "'": "'", '"': '"'}
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")


def _tokenize(source: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    pos = 0
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if not match:
            raise ExpressionError(
                f"Unsupported character {source[pos]!r} at offset {pos}"
            )
        kind = match.lastgroup
        if kind != "ws":
            tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    out: List[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\":
            i += 1
            escaped = body[i]
            if escaped not in _ESCAPES:
                raise ExpressionError(f"Unsupported escape sequence \\{escaped}")
            out.append(_ESCAPES[escaped])
        else:
            out.append(char)
        i += 1
    return "".join(out)


# --------------------------------------------------------------- coercions
def number_to_string(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        # shortest round-trip digits, zero padded past 2**53
        return str(int(Decimal(repr(value))))
    if abs(value) >= 1e21 or abs(value) < 1e-6:
        mantissa, exponent = repr(value).split("e")
        exp = int(exponent)
        return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"
    text = repr(value)
    if "e" in text:
        text = format(Decimal(text), "f")
    return text


def to_string(value: JSValue) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return number_to_string(value)
    if isinstance(value, tuple):
        return ",".join(
            "" if item is UNDEFINED else to_string(item) for item in value
        )
    return "undefined"


def to_number(value: JSValue) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, tuple):
        return to_number(to_string(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _DECIMAL_RE.match(text):
            return float(text)
        if _HEX_RE.match(text):
            return float(int(text, 16))
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        return math.nan
    return math.nan


def to_boolean(value: JSValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return bool(value)
    return isinstance(value, tuple)


def _to_primitive(value: JSValue) -> JSValue:
    if isinstance(value, tuple):
        return to_string(value)
    return value


def _add(left: JSValue, right: JSValue) -> JSValue:
    left, right = _to_primitive(left), _to_primitive(right)
    if isinstance(left, str) or isinstance(right, str):
        return to_string(left) + to_string(right)
    return to_number(left) + to_number(right)


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _remainder(left: float, right: float) -> float:
    if right == 0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    if math.isinf(right):
        return left
    return math.fmod(left, right)


def _index(target: JSValue, key: JSValue) -> JSValue:
    if not isinstance(target, (str, tuple)):
        raise ExpressionError(f"Cannot index into {to_string(target)!r}")
    key_text = to_string(_to_primitive(key))
    if not key_text.isdigit() or (len(key_text) > 1 and key_text[0] == "0"):
        raise ExpressionError(f"Unsupported property access {key_text!r}")
    position = int(key_text)
    if position >= len(target):
        return UNDEFINED
    return target[position]


# ------------------------------------------------------------------ parser
class _Parser:
    def __init__(self, tokens: List[Tuple[str, str]]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> Tuple[str, str]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return ("eof", "")

    def _take(self) -> Tuple[str, str]:
        token = self._peek()
        self._pos += 1
        return token

    def _expect(self, value: str) -> None:
        kind, text = self._take()
        if kind != "punct" or text != value:
            raise ExpressionError(f"Expected {value!r}, got {text or 'end of input'!r}")

    def _at(self, *values: str) -> bool:
        kind, text = self._peek()
        return kind == "punct" and text in values

    def parse(self) -> JSValue:
        if not self._tokens:
            raise ExpressionError("Empty expression")
        value = self._additive()
        if self._pos != len(self._tokens):
            raise ExpressionError(f"Unexpected token {self._peek()[1]!r}")
        return value

    def _additive(self) -> JSValue:
        value = self._multiplicative()
        while self._at("+", "-"):
            op = self._take()[1]
            right = self._multiplicative()
            if op == "+":
                value = _add(value, right)
            else:
                value = to_number(value) - to_number(right)
        return value

    def _multiplicative(self) -> JSValue:
        value = self._unary()
        while self._at("*", "/", "%"):
            op = self._take()[1]
            left, right = to_number(value), to_number(self._unary())
            if op == "*":
                value = left * right
            elif op == "/":
                value = _divide(left, right)
            else:
                value = _remainder(left, right)
        return value

    def _unary(self) -> JSValue:
        if self._at("+", "-", "!"):
            op = self._take()[1]
            operand = self._unary()
            if op == "+":
                return to_number(operand)
            if op == "-":
                return -to_number(operand)
            return not to_boolean(operand)
        return self._postfix()

    def _postfix(self) -> JSValue:
        value = self._primary()
        while self._at("["):
            self._take()
            key = self._additive()
            self._expect("]")
            value = _index(value, key)
        return value

    def _primary(self) -> JSValue:
        kind, text = self._take()
        if kind == "number":
            return float(text)
        if kind == "string":
            return _unquote(text)
        if kind == "punct" and text == "(":
            value = self._additive()
            self._expect(")")
            return value
        if kind == "punct" and text == "[":
            items: List[JSValue] = []
            if not self._at("]"):
                items.append(self._additive())
                while self._at(","):
                    self._take()
                    items.append(self._additive())
            self._expect("]")
            return tuple(items)
        raise ExpressionError(f"Unexpected token {text or 'end of input'!r}")


def evaluate(expression: str) -> JSValue:
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError("Expression is too long")
    try:
        return _Parser(_tokenize(expression)).parse()
    except RecursionError as exc:
        raise ExpressionError("Expression is nested too deeply") from exc


def evaluate_to_string(expression: str) -> str:
    """Evaluate ``expression`` and return the result as JavaScript's ``toString``."""
    return to_string(evaluate(expression))


__all__ = [
    "ExpressionError",
    "evaluate",
    "evaluate_to_string",
    "number_to_string",
    "to_boolean",
    "to_number",
    "to_string",
]
