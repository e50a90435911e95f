"""Data models for mailsearch.

This module contains the option enums, the search options model and the
records stored in the mail index.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from mailsearch.config import FORMAT_VERSION_CURRENT
from mailsearch.models.address import Address, AddressGroup, Mailbox
from mailsearch.models.message_record import MessageRecord


class OutputFormat(str, Enum):
    """Output encoding selected with --format."""

    TEXT = "text"
    TEXT0 = "text0"
    JSON = "json"
    SEXP = "sexp"


class OutputMode(str, Enum):
    """Result granularity selected with --output."""

    SUMMARY = "summary"
    THREADS = "threads"
    MESSAGES = "messages"
    FILES = "files"
    TAGS = "tags"
    SENDER = "sender"
    RECIPIENTS = "recipients"


ADDRESS_MODES = frozenset({OutputMode.SENDER, OutputMode.RECIPIENTS})


class SortOrder(str, Enum):
    """Result order."""

    OLDEST_FIRST = "oldest-first"
    NEWEST_FIRST = "newest-first"


class ExcludePolicy(str, Enum):
    """How messages carrying excluded tags are treated."""

    TRUE = "true"
    FALSE = "false"
    FLAG = "flag"
    ALL = "all"


class SearchOptions(BaseModel):
    """Everything a single search invocation needs besides the query."""

    output: frozenset[OutputMode] = Field(
        default_factory=lambda: frozenset({OutputMode.SUMMARY}),
        description="Requested output modes; sender and recipients may be combined",
    )
    format: OutputFormat = Field(default=OutputFormat.TEXT, description="Output encoding")
    format_version: int = Field(
        default=FORMAT_VERSION_CURRENT,
        description="Structured output format version",
    )
    sort: SortOrder = Field(default=SortOrder.NEWEST_FIRST, description="Result order")
    offset: int = Field(default=0, description="Skip this many results; negative counts from the end")
    limit: int | None = Field(default=None, description="Maximum results, None for unlimited")
    dupe: int | None = Field(
        default=None,
        description="Duplicate file selector for files/messages output, None when unset",
    )
    exclude: ExcludePolicy = Field(default=ExcludePolicy.TRUE, description="Exclude policy")

    @field_validator("dupe")
    @classmethod
    def _negative_dupe_is_unset(cls, value: int | None) -> int | None:
        # --duplicate=-1 is the command-line spelling of "unset"
        if value is not None and value < 0:
            return None
        return value


__all__ = [
    "ADDRESS_MODES",
    "Address",
    "AddressGroup",
    "ExcludePolicy",
    "Mailbox",
    "MessageRecord",
    "OutputFormat",
    "OutputMode",
    "SearchOptions",
    "SortOrder",
]
