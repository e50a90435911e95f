"""Command-line interface for mailsearch.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import structlog

from mailsearch import __version__
from mailsearch.config import Settings, get_settings
from mailsearch.exceptions import MailSearchError
from mailsearch.index import Database, MessageIndexRepository
from mailsearch.index.parsing import index_files
from mailsearch.models import (
    ExcludePolicy,
    OutputFormat,
    OutputMode,
    SearchOptions,
    SortOrder,
)
from mailsearch.render import resolve_exclude, run_search, validate_options

logger = structlog.get_logger()


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def _add_exclude_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--exclude",
        "-x",
        choices=[p.value for p in ExcludePolicy],
        default=ExcludePolicy.TRUE.value,
        help="How to treat messages carrying an excluded tag (default: true)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mailsearch", description="Search a local mail index")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite mail index (default: settings database_path)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser("search", help="Search the index and print results")
    search_parser.add_argument("query", nargs="*", help="Search terms")
    search_parser.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Output encoding (default: text)",
    )
    search_parser.add_argument(
        "--format-version",
        type=int,
        default=None,
        help="Structured output format version (default: settings default_format_version)",
    )
    search_parser.add_argument(
        "--output",
        "-o",
        action="append",
        choices=[m.value for m in OutputMode],
        default=None,
        help="What to print; may be repeated to combine sender and recipients (default: summary)",
    )
    search_parser.add_argument(
        "--sort",
        "-s",
        choices=[s.value for s in SortOrder],
        default=SortOrder.NEWEST_FIRST.value,
        help="Result order (default: newest-first)",
    )
    search_parser.add_argument(
        "--offset",
        "-O",
        type=int,
        default=0,
        help="Skip this many results; negative values count from the end",
    )
    search_parser.add_argument(
        "--limit",
        "-L",
        type=_non_negative_int,
        default=None,
        help="Print at most this many results (default: all)",
    )
    search_parser.add_argument(
        "--duplicate",
        "-D",
        type=int,
        default=None,
        help="With --output=files print only the N-th copy; with --output=messages "
        "print only messages stored in at least N files",
    )
    _add_exclude_argument(search_parser)

    count_parser = subparsers.add_parser("count", help="Count matching messages or threads")
    count_parser.add_argument("query", nargs="*", help="Search terms")
    count_parser.add_argument(
        "--output",
        "-o",
        choices=[OutputMode.MESSAGES.value, OutputMode.THREADS.value],
        default=OutputMode.MESSAGES.value,
        help="What to count (default: messages)",
    )
    _add_exclude_argument(count_parser)

    index_parser = subparsers.add_parser("index", help="Maintain the local mail index")
    index_sub = index_parser.add_subparsers(dest="index_command", required=True)

    add_parser = index_sub.add_parser("add", help="Add mail files or directories to the index")
    add_parser.add_argument("paths", nargs="+", type=Path, help="Mail files or directories")
    add_parser.add_argument(
        "--tag",
        "-t",
        action="append",
        default=[],
        help="Tag to attach to every added message (may be repeated)",
    )

    return parser


def _db_path(args: argparse.Namespace, settings: Settings) -> Path:
    return args.db or settings.database_path


def _cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    options = SearchOptions(
        output=frozenset(OutputMode(o) for o in args.output or []),
        format=OutputFormat(args.format),
        format_version=(
            args.format_version
            if args.format_version is not None
            else settings.default_format_version
        ),
        sort=SortOrder(args.sort),
        offset=args.offset,
        limit=args.limit,
        dupe=args.duplicate,
        exclude=ExcludePolicy(args.exclude),
    )
    # reject bad combinations before opening the index
    options = validate_options(options)

    database = Database.open(_db_path(args, settings))
    run_search(
        database,
        " ".join(args.query),
        options,
        sys.stdout,
        exclude_tags=settings.search_exclude_tags,
    )
    return 0


def _cmd_count(args: argparse.Namespace, settings: Settings) -> int:
    query_string = " ".join(args.query) or "*"
    options = SearchOptions(
        output=frozenset({OutputMode(args.output)}),
        exclude=ExcludePolicy(args.exclude),
    )
    exclude = resolve_exclude(options)

    database = Database.open(_db_path(args, settings))
    query = database.compile(
        query_string,
        exclude_tags=settings.search_exclude_tags if exclude is not ExcludePolicy.FALSE else (),
        exclude=exclude,
    )
    if options.output == {OutputMode.THREADS}:
        print(database.count_threads(query))
    else:
        print(database.count_messages(query))
    return 0


def _cmd_index_add(args: argparse.Namespace, settings: Settings) -> int:
    db_path = _db_path(args, settings)
    repo = MessageIndexRepository(db_path)
    repo.initialize()

    stored = index_files(repo, args.paths, tags=args.tag)
    print(f"Indexed {len(stored)} messages into {db_path} ({repo.count()} total)")
    return 0


def configure_logging(settings: Settings) -> None:
    """Route structlog output to stderr at the configured level."""

    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.WARNING)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(args: list[str] | None = None) -> int:
    """Main entry point for the mailsearch CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()
    configure_logging(settings)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    logger.debug("mailsearch_started", version=__version__, command=parsed.command)

    try:
        if parsed.command == "search":
            return _cmd_search(parsed, settings)
        if parsed.command == "count":
            return _cmd_count(parsed, settings)
        if parsed.command == "index" and parsed.index_command == "add":
            return _cmd_index_add(parsed, settings)
    except MailSearchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        logger.error("command_failed", command=parsed.command, error=str(exc))
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
