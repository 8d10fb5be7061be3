# recordcat/format/template.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from recordcat.models.record import Record

from .directives import Extractor, extract, resolve_directive
from .escapes import decode_escape

Segment = Union[bytes, Extractor]


@dataclass(frozen=True)
class CompiledTemplate:
    """
    A format string compiled into alternating literal and extractor segments.

    Every extractor is preceded by a literal (possibly empty); a final
    literal may trail. Templates hold no per-render state and can be shared
    between threads.
    """

    source: str
    segments: Tuple[Segment, ...]

    @property
    def extractors(self) -> Tuple[Extractor, ...]:
        return tuple(s for s in self.segments if isinstance(s, Extractor))

    @property
    def is_constant(self) -> bool:
        return not self.extractors


def compile_template(fmt: str) -> CompiledTemplate:
    """
    Compile ``fmt`` into a :class:`CompiledTemplate`.

    Raises CompileError on the first malformed escape or directive; nothing
    is returned for a partially valid format.
    """
    segments = []
    literal = bytearray()
    pos = 0
    while pos < len(fmt):
        ch = fmt[pos]

        if ch == "\\":
            byte, pos = decode_escape(fmt, pos)
            literal.append(byte)
            continue

        if ch == "%":
            if fmt.startswith("%%", pos):
                literal += b"%"
                pos += 2
                continue
            extractor, pos = resolve_directive(fmt, pos)
            # Always seal the literal, even when empty.
            segments.append(bytes(literal))
            segments.append(extractor)
            literal = bytearray()
            continue

        literal += ch.encode("utf-8")
        pos += 1

    if literal:
        segments.append(bytes(literal))

    return CompiledTemplate(source=fmt, segments=tuple(segments))


def render_into(out: bytearray, template: CompiledTemplate, record: Record) -> bytearray:
    """Append the rendering of ``record`` to ``out``."""
    for segment in template.segments:
        if isinstance(segment, Extractor):
            out += extract(segment, record)
        else:
            out += segment
    return out


def render(template: CompiledTemplate, record: Record) -> bytes:
    return bytes(render_into(bytearray(), template, record))


class Renderer:
    """
    Renders records with one template, reusing a single output buffer.

    A Renderer is not thread safe; give each concurrent caller its own.
    """

    def __init__(self, template: CompiledTemplate) -> None:
        self.template = template
        self._buf = bytearray()

    def render(self, record: Record) -> bytes:
        del self._buf[:]
        render_into(self._buf, self.template, record)
        return bytes(self._buf)
