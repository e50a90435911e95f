"""Parsed address header values.

An address header is a sequence of entries, each either a single mailbox
or an RFC 5322 group of further entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Mailbox:
    """A single address with an optional display name."""

    address: str
    name: str = ""


@dataclass(frozen=True)
class AddressGroup:
    """A named group of addresses (``Team: a@x, b@y;``). May be empty."""

    name: str
    members: tuple[Address, ...] = field(default_factory=tuple)


Address = Union[Mailbox, AddressGroup]
