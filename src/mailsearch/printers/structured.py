"""Tree-shaped printers: JSON and S-expressions.

Both share the same bookkeeping: a stack of open containers, whether the
next value is the first in its container, and whether a record separator
was requested since the last value. A value that follows a separator starts
on a new line.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TextIO

from mailsearch.printers.base import Sprinter


@dataclass
class _Frame:
    closer: str
    first: bool = True


class _NestingPrinter(Sprinter):
    value_separator = " "

    def __init__(self, stream: TextIO) -> None:
        super().__init__(stream)
        self._stack: list[_Frame] = []
        self._insep = False

    def _begin_value(self) -> None:
        if not self._stack:
            return
        frame = self._stack[-1]
        if frame.first:
            frame.first = False
            return
        if self._insep:
            self._stream.write(self.value_separator.rstrip() + "\n")
            self._insep = False
        else:
            self._stream.write(self.value_separator)

    def _begin(self, opener: str, closer: str) -> None:
        self._begin_value()
        self._stream.write(opener)
        self._stack.append(_Frame(closer))

    def end(self) -> None:
        frame = self._stack.pop()
        self._stream.write(frame.closer)
        if not self._stack:
            self._stream.write("\n")

    def map_key(self, key: str) -> None:
        self._begin_value()
        self._write_key(key)
        # the value that follows belongs to this key
        self._stack[-1].first = True

    def separator(self) -> None:
        self._insep = True

    def _write_key(self, key: str) -> None:
        raise NotImplementedError


class JsonPrinter(_NestingPrinter):
    """JSON output: ``[{"key": "value"}, ...]``."""

    value_separator = ", "

    def begin_map(self) -> None:
        self._begin("{", "}")

    def begin_list(self) -> None:
        self._begin("[", "]")

    def string(self, value: str) -> None:
        self._begin_value()
        self._stream.write(json.dumps(value, ensure_ascii=False))

    def integer(self, value: int) -> None:
        self._begin_value()
        self._stream.write(str(int(value)))

    def null(self) -> None:
        self._begin_value()
        self._stream.write("null")

    def _write_key(self, key: str) -> None:
        self._stream.write(json.dumps(key, ensure_ascii=False) + ": ")


def _sexp_quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class SexpPrinter(_NestingPrinter):
    """S-expression output: lists ``(a b)``, maps as ``(:key value ...)``."""

    value_separator = " "

    def begin_map(self) -> None:
        self._begin("(", ")")

    def begin_list(self) -> None:
        self._begin("(", ")")

    def string(self, value: str) -> None:
        self._begin_value()
        self._stream.write(_sexp_quote(value))

    def integer(self, value: int) -> None:
        self._begin_value()
        self._stream.write(str(int(value)))

    def null(self) -> None:
        self._begin_value()
        self._stream.write("nil")

    def _write_key(self, key: str) -> None:
        self._stream.write(f":{key} ")
