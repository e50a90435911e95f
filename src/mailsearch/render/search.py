"""Search orchestration: validate options, compile the query, dispatch.

All option checks happen before the index is touched, so a rejected
invocation produces no output at all.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO

import structlog

from mailsearch.config import FORMAT_VERSION_CURRENT, FORMAT_VERSION_MIN
from mailsearch.exceptions import ConfigurationError
from mailsearch.index import Database
from mailsearch.models import (
    ADDRESS_MODES,
    ExcludePolicy,
    OutputFormat,
    OutputMode,
    SearchOptions,
)
from mailsearch.printers import create_printer
from mailsearch.render.messages import render_messages
from mailsearch.render.tags import render_tags
from mailsearch.render.threads import render_threads

logger = structlog.get_logger()

THREAD_OUTPUTS = ({OutputMode.SUMMARY}, {OutputMode.THREADS})
MESSAGE_OUTPUTS = ({OutputMode.MESSAGES}, {OutputMode.FILES})


def _renderer_kind(output: frozenset[OutputMode]) -> str | None:
    if output in THREAD_OUTPUTS:
        return "threads"
    if output in MESSAGE_OUTPUTS or (output and output <= ADDRESS_MODES):
        return "messages"
    if output == {OutputMode.TAGS}:
        return "tags"
    return None


def validate_options(options: SearchOptions) -> SearchOptions:
    """Check option combinations.

    Returns:
        The options, with the default output mode filled in.

    Raises:
        ConfigurationError: If the options cannot be used together.
    """

    if not options.output:
        options = options.model_copy(update={"output": frozenset({OutputMode.SUMMARY})})
    output = options.output

    if options.dupe is not None and output not in MESSAGE_OUTPUTS:
        raise ConfigurationError(
            "--duplicate=N is only supported with --output=files and --output=messages."
        )

    if options.format is OutputFormat.TEXT0 and output == {OutputMode.SUMMARY}:
        raise ConfigurationError("--format=text0 is not compatible with --output=summary.")

    if options.format_version < FORMAT_VERSION_MIN:
        raise ConfigurationError(
            f"mailsearch no longer supports format version {options.format_version}; "
            f"the oldest supported version is {FORMAT_VERSION_MIN}."
        )
    if options.format_version > FORMAT_VERSION_CURRENT:
        raise ConfigurationError(
            f"format version {options.format_version} is not supported; "
            f"the newest supported version is {FORMAT_VERSION_CURRENT}."
        )

    if options.limit is not None and options.limit < 0:
        raise ConfigurationError("--limit must not be negative.")

    if _renderer_kind(output) is None:
        raise ConfigurationError("the combination of outputs is not supported.")

    return options


def resolve_exclude(options: SearchOptions, errors: TextIO | None = None) -> ExcludePolicy:
    """Fall back from ``flag`` to ``false`` where excluded messages cannot be flagged."""

    if options.exclude is ExcludePolicy.FLAG and options.output != {OutputMode.SUMMARY}:
        print("Warning: this output format cannot flag excluded messages.", file=errors or sys.stderr)
        logger.warning("exclude_flag_unsupported", output=sorted(m.value for m in options.output))
        return ExcludePolicy.FALSE
    return options.exclude


def run_search(
    database: Database,
    query_string: str,
    options: SearchOptions,
    stream: TextIO,
    exclude_tags: Iterable[str] = (),
    errors: TextIO | None = None,
) -> None:
    """Render the results of ``query_string`` to ``stream``.

    Args:
        database: Index to search.
        query_string: Query in the index's query language.
        options: Output, window and exclusion options.
        stream: Where rendered output goes.
        exclude_tags: Tags whose messages the exclude policy applies to.
        errors: Where user-facing warnings go (defaults to stderr).

    Raises:
        ConfigurationError: For invalid options or an empty query; raised
            before anything is written.
        QuerySyntaxError: If the query cannot be compiled.
        EngineUnavailableError: If the index cannot produce results.
        ResourceExhaustedError: If thread sub-queries cannot be built.
    """

    options = validate_options(options)
    if not query_string.strip():
        raise ConfigurationError("mailsearch search requires at least one search term.")

    exclude = resolve_exclude(options, errors)
    query = database.compile(
        query_string,
        sort=options.sort,
        exclude_tags=exclude_tags if exclude is not ExcludePolicy.FALSE else (),
        exclude=exclude,
    )
    printer = create_printer(options.format, stream)

    kind = _renderer_kind(options.output)
    logger.info(
        "search_started",
        query=query_string,
        output=sorted(m.value for m in options.output),
        format=options.format.value,
        offset=options.offset,
        limit=options.limit,
    )

    if kind == "threads":
        render_threads(database, query, printer, options)
    elif kind == "messages":
        render_messages(database, query, printer, options)
    else:
        render_tags(database, query, printer)
