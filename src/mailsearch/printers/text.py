"""Line-oriented text printers."""

from __future__ import annotations

from typing import TextIO

from mailsearch.printers.base import Sprinter


class TextPrinter(Sprinter):
    """Bare values, one record per line.

    Structure (maps, lists, keys) is dropped; a prefix set with
    :meth:`set_prefix` renders the next value as ``prefix:value``.
    """

    is_text_printer = True
    record_separator = "\n"

    def __init__(self, stream: TextIO) -> None:
        super().__init__(stream)
        self._prefix: str | None = None

    def begin_map(self) -> None:
        pass

    def begin_list(self) -> None:
        pass

    def end(self) -> None:
        pass

    def _write_value(self, text: str) -> None:
        if self._prefix is not None:
            self._stream.write(f"{self._prefix}:")
            self._prefix = None
        self._stream.write(text)

    def string(self, value: str) -> None:
        self._write_value(value)

    def integer(self, value: int) -> None:
        self._write_value(str(value))

    def null(self) -> None:
        self._prefix = None

    def map_key(self, key: str) -> None:
        pass

    def separator(self) -> None:
        self._stream.write(self.record_separator)

    def set_prefix(self, prefix: str) -> None:
        self._prefix = prefix


class Text0Printer(TextPrinter):
    """Like :class:`TextPrinter`, but records end with a NUL byte."""

    record_separator = "\0"
