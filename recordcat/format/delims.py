# recordcat/format/delims.py

from __future__ import annotations

from typing import Tuple

from .errors import CompileError

_CLOSERS = {
    "{": "}",
    "[": "]",
    "(": ")",
}


def closing_for(opener: str) -> str:
    """Bracket openers close with their partner; anything else closes itself."""
    return _CLOSERS.get(opener, opener)


def match_delimited(text: str) -> Tuple[str, str]:
    """
    Split ``text`` into the section enclosed by its leading delimiter run
    and whatever follows the matching closing run.

    The first character opens the section and may be repeated, e.g.
    ``[[%F]]`` or ``||%H:%M||``. The closing run is the partner character
    repeated the same number of times; the first such run ends the section.

    >>> match_delimited("[[%F]]}rest")
    ('%F', '}rest')
    """
    if not text:
        raise CompileError("unmatched delimiter: no opening delimiter")

    opener = text[0]
    count = 1
    while count < len(text) and text[count] == opener:
        count += 1

    closing_run = closing_for(opener) * count
    body = text[count:]
    end = body.find(closing_run)
    if end < 0:
        raise CompileError(f"unmatched delimiter: missing closing {closing_run!r}")
    return body[:end], body[end + len(closing_run) :]
