"""Result windowing (``--offset`` / ``--limit``)."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from itertools import islice
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RenderWindow:
    """The slice ``[offset, offset + limit)`` of a result sequence.

    ``limit`` of None means unlimited.
    """

    offset: int = 0
    limit: int | None = None

    @classmethod
    def resolve(
        cls,
        offset: int,
        limit: int | None,
        count: Callable[[], int],
    ) -> RenderWindow:
        """Build a window, counting from the end when ``offset`` is negative.

        ``count`` is only called for a negative offset.
        """

        if offset < 0:
            offset = max(0, count() + offset)
        return cls(offset=offset, limit=limit)

    @property
    def stop(self) -> int | None:
        if self.limit is None:
            return None
        return self.offset + self.limit

    def apply(self, items: Iterator[T]) -> Iterator[T]:
        """Skip to ``offset`` and stop after ``limit`` items.

        Skipped items are still pulled from ``items``; nothing past the
        window's end is fetched.
        """

        return islice(items, self.offset, self.stop)
