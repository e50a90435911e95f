"""Thread output: ``--output=summary`` and ``--output=threads``."""

from __future__ import annotations

from contextlib import closing

import structlog

from mailsearch.exceptions import ResourceExhaustedError
from mailsearch.index import Database, Query, Thread
from mailsearch.index.query import make_boolean_term
from mailsearch.models import OutputMode, SearchOptions, SortOrder
from mailsearch.printers import Sprinter
from mailsearch.render.window import RenderWindow
from mailsearch.utils import relative_date, sanitize_string

logger = structlog.get_logger()


def get_thread_query(thread: Thread) -> tuple[str | None, str | None]:
    """Return queries selecting exactly the matched and unmatched messages.

    Each query is a space-separated list of ``id:`` terms, which the query
    language ORs together. A category with no messages gives None.

    Raises:
        ResourceExhaustedError: If the query strings cannot be built.
    """

    matched: list[str] = []
    unmatched: list[str] = []
    try:
        with closing(thread.messages()) as messages:
            for message in messages:
                terms = matched if message.matched else unmatched
                terms.append(make_boolean_term("id", message.message_id))
        return " ".join(matched) or None, " ".join(unmatched) or None
    except MemoryError as exc:
        raise ResourceExhaustedError("Out of memory") from exc


def _print_summary(thread: Thread, printer: Sprinter, options: SearchOptions) -> None:
    if options.sort is SortOrder.OLDEST_FIRST:
        date = thread.oldest_date
    else:
        date = thread.newest_date
    date_relative = relative_date(date)

    if printer.is_text_printer:
        printer.string(
            f"thread:{thread.thread_id} {date_relative:>12} "
            f"[{thread.matched_messages}/{thread.total_messages}] "
            f"{sanitize_string(thread.authors)}; {sanitize_string(thread.subject)} "
            f"({' '.join(thread.tags)})"
        )
        printer.separator()
        return

    printer.begin_map()
    printer.map_key("thread")
    printer.string(thread.thread_id)
    printer.map_key("timestamp")
    printer.integer(date)
    printer.map_key("date_relative")
    printer.string(date_relative)
    printer.map_key("matched")
    printer.integer(thread.matched_messages)
    printer.map_key("total")
    printer.integer(thread.total_messages)
    printer.map_key("authors")
    printer.string(thread.authors)
    printer.map_key("subject")
    printer.string(thread.subject)

    if options.format_version >= 2:
        matched_query, unmatched_query = get_thread_query(thread)
        printer.map_key("query")
        printer.begin_list()
        for query in (matched_query, unmatched_query):
            if query is None:
                printer.null()
            else:
                printer.string(query)
        printer.end()

    printer.map_key("tags")
    printer.begin_list()
    for tag in thread.tags:
        printer.string(tag)
    printer.end()

    printer.end()
    printer.separator()


def render_threads(database: Database, query: Query, printer: Sprinter, options: SearchOptions) -> None:
    """Print one record per thread in the requested window."""

    window = RenderWindow.resolve(
        options.offset, options.limit, lambda: database.count_threads(query)
    )
    threads = database.search_threads(query)
    ids_only = OutputMode.THREADS in options.output
    rendered = 0

    printer.begin_list()
    with closing(threads):
        for thread in window.apply(threads):
            if ids_only:
                printer.set_prefix("thread")
                printer.string(thread.thread_id)
                printer.separator()
            else:
                _print_summary(thread, printer, options)
            rendered += 1
    printer.end()

    logger.debug("threads_rendered", count=rendered, offset=window.offset, limit=window.limit)
