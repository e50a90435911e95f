"""Helpers for turning mail files into index records."""

from __future__ import annotations

import hashlib
import uuid
from collections.abc import Iterable, Iterator
from email import errors, policy
from email.parser import BytesHeaderParser
from email.utils import parsedate_to_datetime
from pathlib import Path

import structlog

from mailsearch.exceptions import IndexingError
from mailsearch.index.repository import MessageIndexRepository
from mailsearch.models import MessageRecord

logger = structlog.get_logger()

INDEXED_HEADERS = ("from", "to", "cc", "bcc", "subject", "date", "in-reply-to", "references")


def _strip_id(value: str) -> str:
    value = value.strip()
    if value.startswith("<") and value.endswith(">"):
        value = value[1:-1]
    return value.strip()


def _parse_references(value: str | None) -> list[str]:
    if not value:
        return []
    return [_strip_id(part) for part in value.replace(">", "> ").split() if part.startswith("<")]


def _parse_timestamp(value: str | None) -> int:
    if not value:
        return 0
    try:
        return int(parsedate_to_datetime(value).timestamp())
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_message_bytes(data: bytes, path: str) -> MessageRecord:
    """Parse the headers of a raw RFC 5322 message.

    The returned record has an empty ``thread_id``; threads are assigned
    when the record is added to an index.
    """

    msg = BytesHeaderParser(policy=policy.default).parsebytes(data)

    headers: dict[str, str] = {}
    for name in INDEXED_HEADERS:
        try:
            value = msg.get(name)
        except (errors.HeaderParseError, IndexError, ValueError):
            logger.debug("mail_header_unparseable", path=path, header=name)
            continue
        if value is not None:
            headers[name] = str(value)

    raw_id = msg.get("message-id")
    message_id = _strip_id(str(raw_id)) if raw_id else ""
    if not message_id:
        message_id = "mailsearch-sha1-" + hashlib.sha1(data).hexdigest()

    return MessageRecord(
        message_id=message_id,
        thread_id="",
        timestamp=_parse_timestamp(headers.get("date")),
        headers=headers,
        filenames=[path],
    )


def parse_message_file(path: Path) -> MessageRecord:
    """Read ``path`` and parse it with :func:`parse_message_bytes`.

    Raises:
        IndexingError: If the file cannot be read.
    """

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise IndexingError(f"Could not read {path}: {exc}") from exc
    return parse_message_bytes(data, str(path.resolve()))


def iter_mail_files(paths: Iterable[Path]) -> Iterator[Path]:
    """Expand directories recursively, skipping hidden entries."""

    for path in paths:
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file() and not any(
                    part.startswith(".") for part in child.relative_to(path).parts
                ):
                    yield child
        elif path.exists():
            yield path
        else:
            raise IndexingError(f"No such file or directory: {path}")


def assign_threads(repo: MessageIndexRepository, records: list[MessageRecord]) -> list[MessageRecord]:
    """Give every record a thread id.

    A message joins the thread of the first already-known message it
    references (References, then In-Reply-To); otherwise it starts a new
    thread. Messages already in the index keep their thread.
    """

    known: dict[str, str] = {}
    threaded = []
    for record in records:
        thread_id = known.get(record.message_id) or repo.thread_for_message_ids([record.message_id])
        if thread_id is None:
            refs = _parse_references(record.header("references"))
            refs += _parse_references(record.header("in-reply-to"))
            thread_id = next((known[r] for r in refs if r in known), None)
            if thread_id is None:
                thread_id = repo.thread_for_message_ids(refs)
        if thread_id is None:
            thread_id = uuid.uuid4().hex[:16]
        known[record.message_id] = thread_id
        threaded.append(record.model_copy(update={"thread_id": thread_id}))
    return threaded


def index_files(
    repo: MessageIndexRepository,
    paths: Iterable[Path],
    tags: Iterable[str] = (),
) -> list[MessageRecord]:
    """Parse mail files and add them to ``repo`` with ``tags``.

    Returns:
        The stored records.
    """

    tag_list = list(dict.fromkeys(tags))
    records = []
    for path in iter_mail_files(paths):
        record = parse_message_file(path)
        records.append(record.model_copy(update={"tags": list(tag_list)}))
        logger.debug("mail_file_parsed", path=str(path), message_id=record.message_id)

    # Oldest first so replies find their parents within one batch.
    records.sort(key=lambda r: r.timestamp)
    stored = repo.add_many(assign_threads(repo, records))
    logger.info("mail_files_indexed", file_count=len(records), message_count=len(stored))
    return stored
