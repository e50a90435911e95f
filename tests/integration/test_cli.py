"""Integration tests for the mailsearch command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mailsearch.cli import main
from mailsearch.config import get_settings


def _mail(message_id: str, subject: str, date: str, extra: str = "") -> bytes:
    return (
        f"Message-ID: <{message_id}>\r\n"
        f"From: Alice <alice@example.com>\r\n"
        f"To: Bob <bob@example.com>, Team: carol@example.com;\r\n"
        f"Subject: {subject}\r\n"
        f"Date: {date}\r\n"
        f"{extra}"
        f"\r\n"
        f"Body\r\n"
    ).encode()


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch):
    for name in ("MAILSEARCH_SEARCH_EXCLUDE_TAGS", "MAILSEARCH_DEBUG", "MAILSEARCH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def indexed_db(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> Path:
    maildir = tmp_path / "mail"
    maildir.mkdir()
    (maildir / "1").write_bytes(_mail("p@x", "Plan", "Tue, 14 Nov 2023 22:13:20 +0000"))
    (maildir / "2").write_bytes(
        _mail("r@x", "Re: Plan", "Tue, 14 Nov 2023 23:00:00 +0000", "In-Reply-To: <p@x>\r\n")
    )
    (maildir / "3").write_bytes(_mail("s@x", "Prize", "Wed, 15 Nov 2023 08:00:00 +0000"))

    db_path = tmp_path / "index.sqlite3"
    assert main(["--db", str(db_path), "index", "add", str(maildir / "1"), str(maildir / "2")]) == 0
    assert main(["--db", str(db_path), "index", "add", str(maildir / "3"), "--tag", "spam"]) == 0
    capsys.readouterr()
    return db_path


@pytest.mark.integration
class TestCli:
    """End-to-end runs of the command line."""

    def test_index_add_reports_counts(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that index add reports how many messages were stored."""
        mail = tmp_path / "1.eml"
        mail.write_bytes(_mail("p@x", "Plan", "Tue, 14 Nov 2023 22:13:20 +0000"))
        db_path = tmp_path / "index.sqlite3"

        assert main(["--db", str(db_path), "index", "add", str(mail)]) == 0
        assert "Indexed 1 messages" in capsys.readouterr().out

    def test_search_messages_excludes_spam(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test search messages excludes spam."""
        assert main(["--db", str(indexed_db), "search", "--output=messages", "*"]) == 0
        assert capsys.readouterr().out == "id:r@x\nid:p@x\n"

    def test_search_named_tag_is_not_excluded(
        self, indexed_db: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test search named tag is not excluded."""
        assert main(["--db", str(indexed_db), "search", "--output=messages", "tag:spam"]) == 0
        assert capsys.readouterr().out == "id:s@x\n"

    def test_search_json_summary(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON summary output with thread sub-queries."""
        assert main(["--db", str(indexed_db), "search", "--format=json", "subject:plan"]) == 0

        records = json.loads(capsys.readouterr().out)
        assert len(records) == 1
        assert records[0]["matched"] == 2
        assert records[0]["query"] == ["id:p@x id:r@x", None]

    def test_search_recipients(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that recipients output flattens groups."""
        assert main(["--db", str(indexed_db), "search", "--output=recipients", "id:p@x"]) == 0
        assert capsys.readouterr().out == "Bob <bob@example.com>\ncarol@example.com\n"

    def test_search_tags(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test tags output for the whole index."""
        assert main(["--db", str(indexed_db), "search", "--output=tags", "--exclude=false", "*"]) == 0
        assert capsys.readouterr().out == "spam\n"

    def test_count(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test counting messages and threads."""
        assert main(["--db", str(indexed_db), "count"]) == 0
        assert main(["--db", str(indexed_db), "count", "--output=threads", "--exclude=false"]) == 0
        assert capsys.readouterr().out == "2\n2\n"

    def test_invalid_options_fail_without_output(
        self, indexed_db: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test invalid options fail without output."""
        assert main(["--db", str(indexed_db), "search", "--format=text0", "*"]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: --format=text0 is not compatible with --output=summary." in captured.err

    def test_missing_index(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that searching a missing index fails with exit code 1."""
        assert main(["--db", str(tmp_path / "missing.sqlite3"), "search", "*"]) == 1
        assert "Error: No mail index found" in capsys.readouterr().err

    def test_empty_query(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a search without terms is rejected."""
        assert main(["--db", str(indexed_db), "search"]) == 1
        assert "requires at least one search term" in capsys.readouterr().err

    @pytest.mark.parametrize("query", ["*", "tag:spam"])
    def test_tags_on_unavailable_index_fail(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str], query: str
    ) -> None:
        """Test that tags output on a missing index exits 1 and prints no list."""
        db_path = tmp_path / "missing.sqlite3"

        assert main(["--db", str(db_path), "search", "--output=tags", "--format=json", query]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: No mail index found" in captured.err

    def test_negative_duplicate_is_unset(self, indexed_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that --duplicate=-1 behaves as if the option were not given."""
        assert main(["--db", str(indexed_db), "search", "--duplicate=-1", "id:p@x"]) == 0
        assert main(["--db", str(indexed_db), "search", "--output=files", "--duplicate=-1", "id:p@x"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("thread:")
        assert lines[1].endswith("/mail/1")
