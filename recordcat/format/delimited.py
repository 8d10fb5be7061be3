# recordcat/format/delimited.py

from __future__ import annotations

from typing import BinaryIO, Iterator

from .errors import InputError

DEFAULT_MAX_READ_BUF = 64 * 1024
_CHUNK_SIZE = 64 * 1024


def split_records(
    stream: BinaryIO,
    delim: bytes,
    *,
    max_buf: int = DEFAULT_MAX_READ_BUF,
    chunk_size: int = _CHUNK_SIZE,
) -> Iterator[bytes]:
    """
    Yield delimiter separated tokens from ``stream``.

    A trailing token without a final delimiter is still yielded. A single
    token larger than ``max_buf`` raises InputError.
    """
    if not delim:
        raise InputError("empty record delimiter")

    read = getattr(stream, "read1", stream.read)
    buf = bytearray()
    while True:
        idx = buf.find(delim)
        if idx > max_buf:
            raise InputError(
                f"record of {idx} bytes exceeds {max_buf} bytes; raise --max-read-buf"
            )
        if idx >= 0:
            token = bytes(buf[:idx])
            del buf[: idx + len(delim)]
            yield token
            continue

        if len(buf) > max_buf:
            raise InputError(
                f"no delimiter {delim!r} within {max_buf} bytes; raise --max-read-buf"
            )

        chunk = read(chunk_size)
        if not chunk:
            if buf:
                yield bytes(buf)
            return
        buf += chunk
