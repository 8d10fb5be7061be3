"""recordcat: render Kafka records through a kafkacat style format string."""

from recordcat.format import CompileError, CompiledTemplate, Renderer, compile_template, render
from recordcat.models import Record

__version__ = "0.1.0"

__all__ = [
    "CompileError",
    "CompiledTemplate",
    "Record",
    "Renderer",
    "compile_template",
    "render",
]
