"""Address extraction for ``--output=sender`` and ``--output=recipients``."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from email import errors
from email.headerregistry import Address as EmailAddress
from email.headerregistry import HeaderRegistry

import structlog

from mailsearch.models import Address, AddressGroup, Mailbox
from mailsearch.printers import Sprinter

logger = structlog.get_logger()

_registry = HeaderRegistry()


def parse_address_header(value: str | None) -> list[Address] | None:
    """Parse an address header value into mailboxes and groups.

    Returns None when there is no value or it cannot be parsed.
    """

    if value is None:
        return None
    try:
        header = _registry("to", value)
    except (errors.HeaderParseError, IndexError, ValueError) as exc:
        logger.debug("address_header_unparseable", value=value, error=str(exc))
        return None

    entries: list[Address] = []
    for group in header.groups:
        mailboxes = tuple(
            Mailbox(address=a.addr_spec, name=a.display_name or "")
            for a in group.addresses
            if a.addr_spec and a.addr_spec != "<>"
        )
        if group.display_name is None:
            entries.extend(mailboxes)
        else:
            entries.append(AddressGroup(name=group.display_name, members=mailboxes))
    return entries


def flatten_addresses(entries: Iterable[Address]) -> Iterator[Mailbox]:
    """Yield every mailbox in ``entries``, descending into groups."""

    for entry in entries:
        if isinstance(entry, AddressGroup):
            if not entry.members:
                continue
            yield from flatten_addresses(entry.members)
        else:
            yield entry


def format_name_addr(mailbox: Mailbox) -> str:
    """``Name <addr>``, quoting the name when needed, or the bare address."""

    try:
        return str(EmailAddress(display_name=mailbox.name, addr_spec=mailbox.address))
    except (errors.HeaderParseError, IndexError, ValueError):
        if mailbox.name:
            return f"{mailbox.name} <{mailbox.address}>"
        return mailbox.address


def print_mailbox(printer: Sprinter, mailbox: Mailbox) -> None:
    name_addr = format_name_addr(mailbox)

    if printer.is_text_printer:
        printer.string(name_addr)
        printer.separator()
        return

    printer.begin_map()
    printer.map_key("name")
    printer.string(mailbox.name)
    printer.map_key("address")
    printer.string(mailbox.address)
    printer.map_key("name-addr")
    printer.string(name_addr)
    printer.end()
    printer.separator()


def process_address_header(printer: Sprinter, value: str | None) -> None:
    """Print every mailbox of one header. Unparseable values print nothing."""

    entries = parse_address_header(value)
    if entries is None:
        return
    for mailbox in flatten_addresses(entries):
        print_mailbox(printer, mailbox)
