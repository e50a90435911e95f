"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest
import structlog

from mailsearch.index import Database, MessageIndexRepository
from mailsearch.models import MessageRecord


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a CLI test installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def mock_settings():
    """Provide settings pointing at a test database."""
    from mailsearch.config import Settings

    return Settings(
        database_path="test_index.sqlite3",
        search_exclude_tags=["spam"],
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def sample_records() -> list[MessageRecord]:
    """Three threads: a three-message discussion, a lunch invite and spam."""
    return [
        MessageRecord(
            message_id="m1@example.com",
            thread_id="t1",
            timestamp=1700000000,
            headers={
                "from": "Alice <alice@example.com>",
                "to": "Bob <bob@example.com>",
                "subject": "Project plan",
            },
            tags=["inbox", "work"],
            filenames=["/mail/a/1", "/mail/b/1", "/mail/c/1"],
        ),
        MessageRecord(
            message_id="m2@example.com",
            thread_id="t1",
            timestamp=1700000100,
            headers={
                "from": "Bob <bob@example.com>",
                "to": "Alice <alice@example.com>",
                "cc": "Team: carol@example.com, Dan <dan@example.com>;",
                "subject": "Re: Project plan",
            },
            tags=["inbox", "work"],
            filenames=["/mail/a/2"],
        ),
        MessageRecord(
            message_id="m3@example.com",
            thread_id="t1",
            timestamp=1700000200,
            headers={
                "from": "Carol <carol@example.com>",
                "to": "Alice <alice@example.com>, Bob <bob@example.com>",
                "subject": "Re: Project plan",
            },
            tags=["inbox"],
            filenames=["/mail/a/3"],
        ),
        MessageRecord(
            message_id="m4@example.com",
            thread_id="t2",
            timestamp=1700001000,
            headers={
                "from": '"Doe, John" <john@doe.com>',
                "to": "undisclosed-recipients:;",
                "subject": "Lunch",
            },
            tags=["inbox", "personal"],
            filenames=["/mail/a/4", "/mail/b/4"],
        ),
        MessageRecord(
            message_id="m5@example.com",
            thread_id="t3",
            timestamp=1700002000,
            headers={
                "from": "Deals <deals@shop.example>",
                "to": "alice@example.com",
                "subject": "You won",
            },
            tags=["spam"],
            filenames=["/mail/spam/5"],
        ),
    ]


@pytest.fixture
def repository(tmp_path, sample_records) -> MessageIndexRepository:
    """An initialized index holding ``sample_records``."""
    repo = MessageIndexRepository(tmp_path / "index.sqlite3")
    repo.initialize()
    repo.upsert_many(sample_records)
    return repo


@pytest.fixture
def database(repository) -> Database:
    return Database(repository)


@pytest.fixture
def sample_mail_bytes() -> bytes:
    """A minimal RFC 5322 message."""
    return (
        b"Message-ID: <abc@example.com>\r\n"
        b"From: Alice <alice@example.com>\r\n"
        b"To: Bob <bob@example.com>, \"Doe, John\" <john@doe.com>\r\n"
        b"Subject: Weekly sync\r\n"
        b"Date: Tue, 14 Nov 2023 22:13:20 +0000\r\n"
        b"\r\n"
        b"See you there.\r\n"
    )
