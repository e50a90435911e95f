"""SQLite-backed storage for indexed mail messages.

The index stores headers, tags and file locations for each message, keyed
by Message-ID. Message bodies are never stored; they stay in the mail
files listed for each message.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import structlog

from mailsearch.exceptions import EngineUnavailableError
from mailsearch.models import MessageRecord

logger = structlog.get_logger()


_SCHEMA_VERSION = 1


class MessageIndexRepository:
    """Repository for storing and reading indexed messages."""

    def __init__(self, db_path: Path) -> None:
        """Create a repository.

        Args:
            db_path: Path to the SQLite database file.
        """

        self._db_path = db_path

    @property
    def db_path(self) -> Path:
        return self._db_path

    def initialize(self) -> None:
        """Create or upgrade the index schema."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS _schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

            current_version = self._get_schema_version(conn)
            if current_version is None:
                self._create_schema_v1(conn)
                self._set_schema_version(conn, _SCHEMA_VERSION)
                conn.commit()
                logger.info("mail_index_schema_created", version=_SCHEMA_VERSION)
                return

            if current_version != _SCHEMA_VERSION:
                raise EngineUnavailableError(
                    f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                )

    def verify(self) -> None:
        """Check that an initialized index exists at ``db_path``.

        Raises:
            EngineUnavailableError: If the database is missing or has an
                unexpected schema version.
        """

        if not self._db_path.exists():
            raise EngineUnavailableError(f"No mail index found at {self._db_path}")

        try:
            with self._connect() as conn:
                version = self._get_schema_version(conn)
        except sqlite3.Error as exc:
            raise EngineUnavailableError(
                f"Could not open mail index at {self._db_path}: {exc}"
            ) from exc

        if version != _SCHEMA_VERSION:
            raise EngineUnavailableError(
                f"Unsupported schema version {version}; expected {_SCHEMA_VERSION}"
            )

    def upsert_many(self, records: list[MessageRecord]) -> None:
        """Upsert a batch of message records, replacing stored values."""

        if not records:
            return

        now_iso = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO messages (
                    message_id,
                    thread_id,
                    timestamp,
                    headers_json,
                    tags_json,
                    filenames_json,
                    updated_at_iso
                )
                VALUES (
                    :message_id,
                    :thread_id,
                    :timestamp,
                    :headers_json,
                    :tags_json,
                    :filenames_json,
                    :updated_at_iso
                )
                ON CONFLICT(message_id) DO UPDATE SET
                    thread_id=excluded.thread_id,
                    timestamp=excluded.timestamp,
                    headers_json=excluded.headers_json,
                    tags_json=excluded.tags_json,
                    filenames_json=excluded.filenames_json,
                    updated_at_iso=excluded.updated_at_iso
                """,
                [
                    {
                        "message_id": r.message_id,
                        "thread_id": r.thread_id,
                        "timestamp": r.timestamp,
                        "headers_json": json.dumps(r.headers),
                        "tags_json": json.dumps(r.tags),
                        "filenames_json": json.dumps(r.filenames),
                        "updated_at_iso": now_iso,
                    }
                    for r in records
                ],
            )
            conn.commit()

    def add_many(self, records: list[MessageRecord]) -> list[MessageRecord]:
        """Add records, merging with any already stored under the same id.

        A message delivered more than once keeps its first headers and
        thread; the new file paths are appended and the tags merged.

        Returns:
            The records as stored.
        """

        merged: dict[str, MessageRecord] = {}
        for record in records:
            existing = merged.get(record.message_id) or self.get_record(record.message_id)
            if existing is None:
                merged[record.message_id] = record
                continue
            filenames = list(existing.filenames)
            filenames.extend(f for f in record.filenames if f not in filenames)
            tags = list(existing.tags)
            tags.extend(t for t in record.tags if t not in tags)
            merged[record.message_id] = existing.model_copy(
                update={"filenames": filenames, "tags": tags}
            )
            logger.debug(
                "duplicate_message_merged",
                message_id=record.message_id,
                file_count=len(filenames),
            )

        stored = list(merged.values())
        self.upsert_many(stored)
        return stored

    def get_record(self, message_id: str) -> MessageRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE message_id = ?;",
                (message_id,),
            ).fetchone()
        return self._row_to_record(row) if row is not None else None

    def thread_for_message_ids(self, message_ids: Iterable[str]) -> str | None:
        """Return the thread of the first stored message among ``message_ids``."""

        with self._connect() as conn:
            for message_id in message_ids:
                row = conn.execute(
                    "SELECT thread_id FROM messages WHERE message_id = ?;",
                    (message_id,),
                ).fetchone()
                if row is not None:
                    return row[0]
        return None

    def iter_records(self, descending: bool = False) -> Iterator[MessageRecord]:
        """Yield every stored record ordered by date, then Message-ID.

        The connection stays open until the iterator is exhausted or closed.
        """

        direction = "DESC" if descending else "ASC"
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM messages "
                f"ORDER BY timestamp {direction}, message_id {direction};"
            )
            for row in cursor:
                yield self._row_to_record(row)

    def all_tags(self) -> list[str]:
        """Every tag used by at least one message, sorted."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT tag.value
                FROM messages, json_each(messages.tags_json) AS tag
                ORDER BY tag.value;
                """
            ).fetchall()
        return [row[0] for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM messages;").fetchone()
        return int(total or 0)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        try:
            row = conn.execute(
                "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
            ).fetchone()
        except sqlite3.OperationalError:
            return None
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?) ",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS messages (
                rowid INTEGER PRIMARY KEY,
                message_id TEXT NOT NULL UNIQUE,
                thread_id TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                headers_json TEXT NOT NULL,
                tags_json TEXT NOT NULL,
                filenames_json TEXT NOT NULL,
                updated_at_iso TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_messages_thread_id
                ON messages(thread_id);

            CREATE INDEX IF NOT EXISTS idx_messages_timestamp
                ON messages(timestamp);
            """
        )

    def _row_to_record(self, row: sqlite3.Row) -> MessageRecord:
        return MessageRecord(
            message_id=row["message_id"],
            thread_id=row["thread_id"],
            timestamp=row["timestamp"],
            headers=json.loads(row["headers_json"]),
            tags=json.loads(row["tags_json"]),
            filenames=json.loads(row["filenames_json"]),
        )


_COLUMNS = "message_id, thread_id, timestamp, headers_json, tags_json, filenames_json"
