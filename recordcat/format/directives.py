# recordcat/format/directives.py

from __future__ import annotations

import base64
import enum
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from recordcat.models.record import Record

from .delims import match_delimited
from .errors import CompileError, RenderError


class ExtractorKind(enum.Enum):
    VALUE = "value"
    VALUE_BASE64 = "value-base64"
    VALUE_LENGTH = "value-length"
    VALUE_LENGTH_BE64 = "value-length-be64"
    KEY = "key"
    KEY_BASE64 = "key-base64"
    KEY_LENGTH = "key-length"
    TOPIC = "topic"
    PARTITION = "partition"
    OFFSET = "offset"
    LEADER_EPOCH = "leader-epoch"
    TIMESTAMP = "timestamp"
    TIMESTAMP_STRFTIME = "timestamp-strftime"


@dataclass(frozen=True)
class Extractor:
    kind: ExtractorKind
    # Only set for TIMESTAMP_STRFTIME.
    time_format: Optional[str] = None


# Directive letters that never take a qualifier block.
_PLAIN = {
    "S": ExtractorKind.VALUE_LENGTH,
    "V": ExtractorKind.VALUE_LENGTH,
    "R": ExtractorKind.VALUE_LENGTH_BE64,
    "K": ExtractorKind.KEY_LENGTH,
    "t": ExtractorKind.TOPIC,
    "p": ExtractorKind.PARTITION,
    "o": ExtractorKind.OFFSET,
    "e": ExtractorKind.LEADER_EPOCH,
}

# Directive letters that accept {base64}: plain kind, base64 kind.
_BYTES = {
    "s": (ExtractorKind.VALUE, ExtractorKind.VALUE_BASE64),
    "v": (ExtractorKind.VALUE, ExtractorKind.VALUE_BASE64),
    "k": (ExtractorKind.KEY, ExtractorKind.KEY_BASE64),
}

_STRFTIME = "strftime"
_BASE64_QUALIFIER = "{base64}"


def resolve_directive(text: str, pos: int) -> Tuple[Extractor, int]:
    """
    Resolve the directive whose ``%`` sits at ``text[pos]``.

    Returns the extractor and the index just past the directive, including
    any qualifier block it consumed. ``%%`` is handled by the compiler and
    never reaches this function.
    """
    if pos + 1 >= len(text):
        raise CompileError("incomplete percent escape at end of format string", pos)

    letter = text[pos + 1]
    after = pos + 2

    kind = _PLAIN.get(letter)
    if kind is not None:
        if text.startswith("{", after):
            raise CompileError(f"unhandled, unknown open brace after %{letter}", pos)
        return Extractor(kind), after

    if letter in _BYTES:
        plain, encoded = _BYTES[letter]
        if text.startswith("{", after):
            if not text.startswith(_BASE64_QUALIFIER, after):
                raise CompileError(f"unknown %{letter}{{ qualifier", pos)
            return Extractor(encoded), after + len(_BASE64_QUALIFIER)
        return Extractor(plain), after

    if letter == "T":
        if not text.startswith("{", after):
            return Extractor(ExtractorKind.TIMESTAMP), after
        return _resolve_time_qualifier(text, pos, after + 1)

    raise CompileError(f"unknown percent escape sequence {'%' + letter!r}", pos)


def _resolve_time_qualifier(text: str, pos: int, start: int) -> Tuple[Extractor, int]:
    if not text.startswith(_STRFTIME, start):
        raise CompileError("unknown time qualifier in %T{", pos)

    rest = text[start + len(_STRFTIME) :]
    pattern, remainder = match_delimited(rest)
    if not remainder.startswith("}"):
        raise CompileError("%T{strftime missing closing brace", pos)

    consumed = len(text) - len(remainder) + 1
    return Extractor(ExtractorKind.TIMESTAMP_STRFTIME, time_format=pattern), consumed


def _ascii(n: int) -> bytes:
    return str(n).encode("ascii")


def _b64(data: bytes) -> bytes:
    return base64.b64encode(data).rstrip(b"=")


def extract(extractor: Extractor, record: Record) -> bytes:
    """Return the bytes ``extractor`` contributes for ``record``."""
    kind = extractor.kind
    if kind is ExtractorKind.VALUE:
        return record.value or b""
    if kind is ExtractorKind.VALUE_BASE64:
        return _b64(record.value or b"")
    if kind is ExtractorKind.VALUE_LENGTH:
        return _ascii(len(record.value or b""))
    if kind is ExtractorKind.VALUE_LENGTH_BE64:
        return struct.pack(">Q", len(record.value or b""))
    if kind is ExtractorKind.KEY:
        return record.key or b""
    if kind is ExtractorKind.KEY_BASE64:
        return _b64(record.key or b"")
    if kind is ExtractorKind.KEY_LENGTH:
        return _ascii(len(record.key or b""))
    if kind is ExtractorKind.TOPIC:
        return record.topic.encode("utf-8")
    if kind is ExtractorKind.PARTITION:
        return _ascii(record.partition)
    if kind is ExtractorKind.OFFSET:
        return _ascii(record.offset)
    if kind is ExtractorKind.LEADER_EPOCH:
        return _ascii(record.leader_epoch)
    if kind is ExtractorKind.TIMESTAMP:
        return _ascii(record.timestamp_ns)
    if kind is ExtractorKind.TIMESTAMP_STRFTIME:
        try:
            return record.timestamp.strftime(extractor.time_format or "").encode("utf-8")
        except (ValueError, UnicodeEncodeError) as exc:
            raise RenderError(
                f"unable to format timestamp with {extractor.time_format!r}: {exc}"
            ) from exc
    raise RenderError(f"unhandled extractor kind {kind!r}")
