# recordcat/format/escapes.py

from __future__ import annotations

import string
from typing import Tuple

from .errors import CompileError

_SIMPLE_ESCAPES = {
    "t": 0x09,
    "n": 0x0A,
    "r": 0x0D,
}

_HEX_DIGITS = frozenset(string.hexdigits)


def decode_escape(text: str, pos: int) -> Tuple[int, int]:
    """
    Decode the backslash escape starting at ``text[pos]``.

    Returns the decoded byte value and the index just past the escape.

    Supported escapes:
        \\t, \\n, \\r   tab, newline, carriage return
        \\xHH         one byte given as two hex digits (either case)
    """
    if pos + 1 >= len(text):
        raise CompileError("unterminated escape: backslash at end of string", pos)

    kind = text[pos + 1]
    if kind in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[kind], pos + 2

    if kind == "x":
        digits = text[pos + 2 : pos + 4]
        if len(digits) < 2:
            raise CompileError("malformed escape: \\x needs two hex digits", pos)
        if not all(c in _HEX_DIGITS for c in digits):
            raise CompileError(f"malformed escape: invalid hex sequence {digits!r}", pos)
        return int(digits, 16), pos + 4

    sequence = "\\" + kind
    raise CompileError(f"unknown escape sequence {sequence!r}", pos)


def parse_delimiter(text: str) -> bytes:
    """Turn a user supplied delimiter string into the bytes it denotes."""
    out = bytearray()
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if ch == "\\":
            byte, pos = decode_escape(text, pos)
            out.append(byte)
            continue
        out += ch.encode("utf-8")
        pos += 1
    return bytes(out)
