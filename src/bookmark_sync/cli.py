"""Command-line tools over exported bookmark files.

The export format is the JSON list produced by
:meth:`BookmarkService.export_bookmarks
<bookmark_sync.service.BookmarkService.export_bookmarks>`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from bookmark_sync import __version__
from bookmark_sync.bookmarks.containers import (
    remove_empty_containers,
    upgrade_legacy_containers,
)
from bookmark_sync.bookmarks.helpers import clean_bookmarks
from bookmark_sync.bookmarks.models import (
    Folder,
    Leaf,
    bookmarks_from_json,
    bookmarks_to_json,
)
from bookmark_sync.bookmarks.search import get_lookahead, search
from bookmark_sync.logger import setup_logging

logger = logging.getLogger(__name__)


def _read_bookmarks(path: str) -> list[Folder | Leaf]:
    text = Path(path).read_text(encoding="utf-8")
    return bookmarks_from_json(text)


def _cmd_search(args: argparse.Namespace) -> int:
    bookmarks = _read_bookmarks(args.file)
    results = search(bookmarks, url=args.url, keywords=args.keywords)
    logger.debug("%d result(s) for %s", len(results), args.keywords)
    print(
        json.dumps(
            [r.model_dump(exclude_none=True) for r in results],
            indent=2,
            ensure_ascii=False,
        )
    )
    return 0


def _cmd_lookahead(args: argparse.Namespace) -> int:
    bookmarks = _read_bookmarks(args.file)
    word = get_lookahead(args.word, bookmarks, tags_only=args.tags_only)
    if word is None:
        return 1
    print(word)
    return 0


def _cmd_clean(args: argparse.Namespace) -> int:
    bookmarks = _read_bookmarks(args.file)
    cleaned = clean_bookmarks(
        remove_empty_containers(upgrade_legacy_containers(bookmarks))
    )
    output = bookmarks_to_json(cleaned)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info("Wrote cleaned bookmarks to %s", args.output)
    else:
        print(output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookmark-sync",
        description="Search and tidy exported bookmark files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Bookmarks matching every keyword, best match first
  bookmark-sync search bookmarks.json python docs

  # Restrict to urls containing a string
  bookmark-sync search bookmarks.json --url github.com

  # Complete a word the way the search box does
  bookmark-sync lookahead bookmarks.json pyt

  # Upgrade legacy containers and drop empty fields
  bookmark-sync clean old.json -o bookmarks.json
        """,
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"bookmark-sync version {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser(
        "search", help="Search an export file"
    )
    search_parser.add_argument("file", help="Exported bookmarks JSON file")
    search_parser.add_argument("keywords", nargs="*", help="Search keywords")
    search_parser.add_argument("--url", help="Only urls containing this")
    search_parser.set_defaults(func=_cmd_search)

    lookahead_parser = subparsers.add_parser(
        "lookahead", help="Suggest a completion for a word"
    )
    lookahead_parser.add_argument("file", help="Exported bookmarks JSON file")
    lookahead_parser.add_argument("word", help="Word to complete")
    lookahead_parser.add_argument(
        "--tags-only", action="store_true", help="Only suggest whole tags"
    )
    lookahead_parser.set_defaults(func=_cmd_lookahead)

    clean_parser = subparsers.add_parser(
        "clean", help="Upgrade and tidy an export file"
    )
    clean_parser.add_argument("file", help="Exported bookmarks JSON file")
    clean_parser.add_argument(
        "-o", "--output", help="Write here instead of stdout"
    )
    clean_parser.set_defaults(func=_cmd_clean)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv* and run the chosen command; returns the exit code."""
    args = build_parser().parse_args(argv)
    load_dotenv()
    setup_logging(mode="cli", debug=args.debug)

    try:
        return args.func(args)
    except (OSError, ValidationError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
