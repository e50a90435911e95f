"""Unit tests for the SQLite message index repository."""

from __future__ import annotations

import sqlite3

import pytest

from mailsearch.exceptions import EngineUnavailableError
from mailsearch.index import MessageIndexRepository
from mailsearch.models import MessageRecord


def test_repository_initialize_and_upsert(tmp_path, sample_records) -> None:
    """Test initializing the index and storing records."""
    repo = MessageIndexRepository(tmp_path / "index.sqlite3")
    repo.initialize()
    repo.upsert_many(sample_records)

    assert repo.count() == 5
    record = repo.get_record("m2@example.com")
    assert record is not None
    assert record.thread_id == "t1"
    assert record.header("cc") == "Team: carol@example.com, Dan <dan@example.com>;"
    assert repo.get_record("missing@example.com") is None


def test_repository_upsert_replaces(repository: MessageIndexRepository) -> None:
    """Test repository upsert replaces."""
    record = repository.get_record("m3@example.com")
    repository.upsert_many([record.model_copy(update={"tags": ["archive"]})])

    assert repository.get_record("m3@example.com").tags == ["archive"]
    assert repository.count() == 5


def test_repository_iter_records_order(repository: MessageIndexRepository) -> None:
    """Test repository iter records order."""
    ascending = [r.message_id for r in repository.iter_records()]
    descending = [r.message_id for r in repository.iter_records(descending=True)]

    assert ascending[0] == "m1@example.com"
    assert descending == list(reversed(ascending))


def test_repository_all_tags(repository: MessageIndexRepository) -> None:
    """Test repository all tags."""
    assert repository.all_tags() == ["inbox", "personal", "spam", "work"]


def test_repository_thread_lookup(repository: MessageIndexRepository) -> None:
    """Test repository thread lookup."""
    assert repository.thread_for_message_ids(["nope@x", "m4@example.com"]) == "t2"
    assert repository.thread_for_message_ids(["nope@x"]) is None


def test_repository_add_many_merges(repository: MessageIndexRepository) -> None:
    """Test repository add many merges."""
    copy = MessageRecord(
        message_id="m3@example.com",
        thread_id="other",
        filenames=["/mail/b/3"],
        tags=["inbox", "archive"],
    )
    stored = repository.add_many([copy])

    assert len(stored) == 1
    record = repository.get_record("m3@example.com")
    assert record.thread_id == "t1"
    assert record.filenames == ["/mail/a/3", "/mail/b/3"]
    assert record.tags == ["inbox", "archive"]


def test_repository_verify_missing(tmp_path) -> None:
    """Test repository verify missing."""
    with pytest.raises(EngineUnavailableError):
        MessageIndexRepository(tmp_path / "missing.sqlite3").verify()


def test_repository_verify_uninitialized(tmp_path) -> None:
    """Test repository verify uninitialized."""
    db_path = tmp_path / "empty.sqlite3"
    sqlite3.connect(db_path).close()

    with pytest.raises(EngineUnavailableError):
        MessageIndexRepository(db_path).verify()
