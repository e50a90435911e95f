"""Structured printer interface.

Renderers describe their output as a tree of lists, maps and scalar
values; a printer turns that description into a concrete encoding. Every
``begin_list``/``begin_map`` must be closed by a matching ``end``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TextIO


class Sprinter(ABC):
    """Base class for output printers."""

    #: Text printers have no nesting; renderers may emit compact lines instead.
    is_text_printer = False

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    @abstractmethod
    def begin_map(self) -> None: ...

    @abstractmethod
    def begin_list(self) -> None: ...

    @abstractmethod
    def end(self) -> None:
        """Close the innermost open map or list."""

    @abstractmethod
    def string(self, value: str) -> None: ...

    @abstractmethod
    def integer(self, value: int) -> None: ...

    @abstractmethod
    def null(self) -> None: ...

    @abstractmethod
    def map_key(self, key: str) -> None: ...

    @abstractmethod
    def separator(self) -> None:
        """Mark the end of a top-level record."""

    def set_prefix(self, prefix: str) -> None:
        """Label the next scalar value. Only text printers use this."""
