# recordcat/format/errors.py

from __future__ import annotations

from typing import Optional


class CompileError(ValueError):
    """A format string could not be compiled into a template."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position

    def __str__(self) -> str:
        msg = super().__str__()
        if self.position is None:
            return msg
        return f"{msg} (at index {self.position})"


class RenderError(RuntimeError):
    """An extractor failed while rendering a single record."""


class SourceError(RuntimeError):
    """The record source (the Kafka client) reported an error."""


class InputError(ValueError):
    """Produce-side input could not be split into records."""
