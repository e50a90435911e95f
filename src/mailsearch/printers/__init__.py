"""Output printers for search results."""

from __future__ import annotations

from typing import TextIO

from mailsearch.models import OutputFormat
from mailsearch.printers.base import Sprinter
from mailsearch.printers.structured import JsonPrinter, SexpPrinter
from mailsearch.printers.text import Text0Printer, TextPrinter

_PRINTERS: dict[OutputFormat, type[Sprinter]] = {
    OutputFormat.TEXT: TextPrinter,
    OutputFormat.TEXT0: Text0Printer,
    OutputFormat.JSON: JsonPrinter,
    OutputFormat.SEXP: SexpPrinter,
}


def create_printer(fmt: OutputFormat, stream: TextIO) -> Sprinter:
    """Return the printer for ``fmt`` writing to ``stream``."""
    return _PRINTERS[fmt](stream)


__all__ = [
    "JsonPrinter",
    "SexpPrinter",
    "Sprinter",
    "Text0Printer",
    "TextPrinter",
    "create_printer",
]
