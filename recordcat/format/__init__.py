from .delims import match_delimited
from .directives import Extractor, ExtractorKind, extract
from .errors import CompileError, InputError, RenderError, SourceError
from .escapes import decode_escape, parse_delimiter
from .template import CompiledTemplate, Renderer, compile_template, render

__all__ = [
    "CompileError",
    "CompiledTemplate",
    "Extractor",
    "ExtractorKind",
    "InputError",
    "RenderError",
    "Renderer",
    "SourceError",
    "compile_template",
    "decode_escape",
    "extract",
    "match_delimited",
    "parse_delimiter",
    "render",
]
