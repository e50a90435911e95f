"""Message output: ids, file paths and extracted addresses."""

from __future__ import annotations

from contextlib import closing

import structlog

from mailsearch.index import Database, Message, Query
from mailsearch.models import OutputMode, SearchOptions
from mailsearch.printers import Sprinter
from mailsearch.render.addresses import process_address_header
from mailsearch.render.window import RenderWindow

logger = structlog.get_logger()

RECIPIENT_HEADERS = ("to", "cc", "bcc")


def _print_files(message: Message, printer: Sprinter, dupe: int | None) -> None:
    # dupe selects the dupe-th stored copy (1-based)
    with closing(message.filenames()) as filenames:
        for index, filename in enumerate(filenames, start=1):
            if dupe is None or dupe == index:
                printer.string(filename)
                printer.separator()


def _print_message_id(message: Message, printer: Sprinter, dupe: int | None) -> None:
    # dupe >= 2 lists only messages stored in at least dupe files
    if dupe is None or dupe <= 1 or dupe <= message.count_filenames():
        printer.set_prefix("id")
        printer.string(message.message_id)
        printer.separator()


def _print_addresses(message: Message, printer: Sprinter, output: frozenset[OutputMode]) -> None:
    if OutputMode.SENDER in output:
        process_address_header(printer, message.header("from"))

    if OutputMode.RECIPIENTS in output:
        for name in RECIPIENT_HEADERS:
            process_address_header(printer, message.header(name))


def render_messages(database: Database, query: Query, printer: Sprinter, options: SearchOptions) -> None:
    """Print the messages in the requested window in the requested mode."""

    window = RenderWindow.resolve(
        options.offset, options.limit, lambda: database.count_messages(query)
    )
    messages = database.search_messages(query)
    rendered = 0

    printer.begin_list()
    with closing(messages):
        for message in window.apply(messages):
            if options.output == {OutputMode.FILES}:
                _print_files(message, printer, options.dupe)
            elif options.output == {OutputMode.MESSAGES}:
                _print_message_id(message, printer, options.dupe)
            else:
                _print_addresses(message, printer, options.output)
            rendered += 1
    printer.end()

    logger.debug("messages_rendered", count=rendered, offset=window.offset, limit=window.limit)
