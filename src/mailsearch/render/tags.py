"""Tag output: ``--output=tags``."""

from __future__ import annotations

from contextlib import closing

from mailsearch.index import Database, Query
from mailsearch.printers import Sprinter


def render_tags(database: Database, query: Query, printer: Sprinter) -> None:
    """Print every tag used by a message matching ``query``, once each."""

    if query.is_match_all:
        # every message matches, so skip the message walk
        tags = database.get_all_tags()
    else:
        with closing(database.search_messages(query)) as messages:
            tags = database.collect_tags(messages)

    printer.begin_list()
    with closing(tags):
        for tag in tags:
            printer.string(tag)
            printer.separator()
    printer.end()
