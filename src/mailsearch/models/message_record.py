"""Stored representation of an indexed mail message.

Only headers, tags and file locations are kept; bodies stay in the mail
files themselves.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MessageRecord(BaseModel):
    """A message as stored in the index."""

    message_id: str = Field(description="Message-ID without angle brackets")
    thread_id: str = Field(description="Identifier shared by every message of a conversation")
    timestamp: int = Field(default=0, description="Date header as seconds since the epoch")

    # Header names are stored lowercased.
    headers: dict[str, str] = Field(default_factory=dict, description="Raw header values")

    tags: list[str] = Field(default_factory=list, description="Tags attached to the message")
    filenames: list[str] = Field(
        default_factory=list,
        description="Every file the message is stored in, in the order they were indexed",
    )

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())
