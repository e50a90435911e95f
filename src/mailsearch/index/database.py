"""Query engine over the message index.

The engine compiles query strings, counts matches, and produces lazy,
single-use result cursors of threads, messages and tags. Cursors are plain
generators: iterate them once and release them with ``close()`` (for
example through ``contextlib.closing``).
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import closing
from dataclasses import dataclass, field
from email.utils import parseaddr
from pathlib import Path

import structlog

from mailsearch.exceptions import EngineUnavailableError
from mailsearch.index.query import MATCH_ALL, Node, parse_query
from mailsearch.index.repository import MessageIndexRepository
from mailsearch.models import ExcludePolicy, MessageRecord, SortOrder

logger = structlog.get_logger()


@dataclass(frozen=True)
class Query:
    """A compiled query together with its sort order and exclusion rules."""

    query_string: str
    expression: Node
    sort: SortOrder = SortOrder.NEWEST_FIRST
    exclude_tags: frozenset[str] = field(default_factory=frozenset)
    exclude: ExcludePolicy = ExcludePolicy.TRUE

    @property
    def active_exclude_tags(self) -> frozenset[str]:
        """Exclude tags in effect; tags the query names explicitly are dropped."""
        if self.exclude is ExcludePolicy.FALSE:
            return frozenset()
        return self.exclude_tags - self.expression.mentioned_tags()

    @property
    def is_match_all(self) -> bool:
        return self.query_string.strip() == MATCH_ALL


class Message:
    """A message produced by a search, flagged relative to the active query."""

    def __init__(self, record: MessageRecord, matched: bool = True, excluded: bool = False) -> None:
        self._record = record
        self.matched = matched
        self.excluded = excluded

    @property
    def message_id(self) -> str:
        return self._record.message_id

    @property
    def thread_id(self) -> str:
        return self._record.thread_id

    @property
    def timestamp(self) -> int:
        return self._record.timestamp

    @property
    def tags(self) -> list[str]:
        return list(self._record.tags)

    def header(self, name: str) -> str | None:
        return self._record.header(name)

    def filenames(self) -> Iterator[str]:
        """Cursor over every file this message is stored in."""
        yield from self._record.filenames

    def count_filenames(self) -> int:
        return len(self._record.filenames)

    def author(self) -> str:
        name, address = parseaddr(self.header("from") or "")
        return name or address

    def __repr__(self) -> str:
        return f"Message({self.message_id!r}, matched={self.matched})"


class Thread:
    """A conversation: every message sharing a thread id."""

    def __init__(self, thread_id: str, messages: list[Message], sort: SortOrder) -> None:
        # messages are ordered oldest first
        self.thread_id = thread_id
        self._messages = messages

        matched = [m for m in messages if m.matched]
        dated = matched or messages

        self.oldest_date = min(m.timestamp for m in dated)
        self.newest_date = max(m.timestamp for m in dated)
        self.matched_messages = len(matched)
        self.total_messages = len(messages)

        if sort is SortOrder.OLDEST_FIRST:
            subject_source = dated[0]
        else:
            subject_source = dated[-1]
        self.subject = subject_source.header("subject") or ""

        self.authors = _format_authors(matched, [m for m in messages if not m.matched])
        self.tags = sorted({tag for m in messages for tag in m.tags})

    def messages(self) -> Iterator[Message]:
        """Cursor over the thread's messages, oldest first."""
        yield from self._messages


def _format_authors(matched: list[Message], unmatched: list[Message]) -> str:
    def _unique(messages: list[Message], seen: set[str]) -> list[str]:
        names = []
        for message in messages:
            author = message.author()
            if author and author not in seen:
                seen.add(author)
                names.append(author)
        return names

    seen: set[str] = set()
    matched_authors = _unique(matched, seen)
    unmatched_authors = _unique(unmatched, seen)
    if matched_authors and unmatched_authors:
        return ", ".join(matched_authors) + "| " + ", ".join(unmatched_authors)
    return ", ".join(matched_authors or unmatched_authors)


class Database:
    """Read-only search interface over a :class:`MessageIndexRepository`."""

    def __init__(self, repository: MessageIndexRepository) -> None:
        self._repository = repository

    @classmethod
    def open(cls, db_path: Path) -> Database:
        """Open an existing index.

        Raises:
            EngineUnavailableError: If no usable index exists at ``db_path``.
        """

        repository = MessageIndexRepository(db_path)
        repository.verify()
        logger.debug("mail_index_opened", db_path=str(db_path))
        return cls(repository)

    def compile(
        self,
        query_string: str,
        sort: SortOrder = SortOrder.NEWEST_FIRST,
        exclude_tags: Iterable[str] = (),
        exclude: ExcludePolicy = ExcludePolicy.TRUE,
    ) -> Query:
        """Compile ``query_string``.

        Raises:
            QuerySyntaxError: If the query cannot be parsed.
        """

        return Query(
            query_string=query_string,
            expression=parse_query(query_string),
            sort=sort,
            exclude_tags=frozenset(exclude_tags),
            exclude=exclude,
        )

    def count_messages(self, query: Query) -> int:
        with closing(self.search_messages(query)) as messages:
            return sum(1 for _ in messages)

    def count_threads(self, query: Query) -> int:
        with closing(self.search_threads(query)) as threads:
            return sum(1 for _ in threads)

    def search_messages(self, query: Query) -> Iterator[Message]:
        """Cursor over the messages matching ``query``, in sort order."""

        records = self._records(descending=query.sort is SortOrder.NEWEST_FIRST)
        return self._iter_messages(query, records)

    def search_threads(self, query: Query) -> Iterator[Thread]:
        """Cursor over the threads containing at least one match."""

        records = self._records(descending=False)
        return self._iter_threads(query, records)

    def collect_tags(self, messages: Iterable[Message]) -> Iterator[str]:
        """Cursor over the distinct tags of ``messages``, sorted."""

        tags = sorted({tag for message in messages for tag in message.tags})
        return (tag for tag in tags)

    def get_all_tags(self) -> Iterator[str]:
        """Cursor over every tag in the index, sorted."""

        self._repository.verify()
        try:
            tags = self._repository.all_tags()
        except sqlite3.Error as exc:
            raise EngineUnavailableError(f"Could not read tags: {exc}") from exc
        return (tag for tag in tags)

    def _records(self, descending: bool) -> Iterator[MessageRecord]:
        try:
            self._repository.verify()
        except EngineUnavailableError:
            logger.error("mail_index_unavailable", db_path=str(self._repository.db_path))
            raise
        return self._repository.iter_records(descending=descending)

    def _iter_messages(self, query: Query, records: Iterator[MessageRecord]) -> Iterator[Message]:
        excluded_tags = query.active_exclude_tags
        with closing(records):
            for record in records:
                if not query.expression.matches(record):
                    continue
                excluded = not excluded_tags.isdisjoint(record.tags)
                if excluded and query.exclude is not ExcludePolicy.FLAG:
                    continue
                yield Message(record, matched=True, excluded=excluded)

    def _iter_threads(self, query: Query, records: Iterator[MessageRecord]) -> Iterator[Thread]:
        excluded_tags = query.active_exclude_tags
        by_thread: dict[str, list[Message]] = {}
        hits: dict[str, list[int]] = {}

        with closing(records):
            for record in records:
                excluded = not excluded_tags.isdisjoint(record.tags)
                if excluded and query.exclude is ExcludePolicy.ALL:
                    continue
                hit = query.expression.matches(record)
                message = Message(record, matched=hit and not excluded, excluded=excluded)
                by_thread.setdefault(record.thread_id, []).append(message)
                if message.matched or (hit and query.exclude is ExcludePolicy.FLAG):
                    hits.setdefault(record.thread_id, []).append(record.timestamp)

        if query.sort is SortOrder.NEWEST_FIRST:
            order = sorted(hits, key=lambda tid: (max(hits[tid]), tid), reverse=True)
        else:
            order = sorted(hits, key=lambda tid: (min(hits[tid]), tid))

        for thread_id in order:
            yield Thread(thread_id, by_thread[thread_id], query.sort)
