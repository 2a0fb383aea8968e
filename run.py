# -*- coding: utf-8 -*-

"""
Command-line entry point: print the outline of an HTML transcript.
"""

import argparse
import logging
import sys
from pathlib import Path

from transcript_outline.config import load_settings
from transcript_outline.core.exceptions import ContentSourceError
from transcript_outline.core.services import InMemoryBookmarkStore
from transcript_outline.core.services.search_service import highlight_segments
from transcript_outline.core.sources import HtmlTranscriptSource
from transcript_outline.logging_config import setup_logging
from transcript_outline.ui.controllers import OutlineController

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Print the outline of an HTML chat transcript.")
    parser.add_argument("file", help="HTML transcript to index")
    parser.add_argument("--level", type=int, default=None, help="display level (default from outline.yml)")
    parser.add_argument("--search", default="", help="only show entries matching this text")
    parser.add_argument("--bookmarks", action="store_true",
                        help="show only entries on the path to a bookmark (data-bookmarked headings)")
    parser.add_argument("--no-user-queries", action="store_true", help="hide conversational turns")
    return parser


def render_outline(controller):
    """Return the visible outline as indented text lines."""
    maps = controller.compute_visibility()
    query = controller.search_query
    lines = []

    def walk(nodes, depth):
        for node in nodes:
            shown = maps.is_visible(node.index)
            if shown:
                text = "".join(
                    f"[{part}]" if matched else part
                    for part, matched in highlight_segments(node.text, query)
                )
                prefix = "> " if node.is_user_query else "- "
                suffix = ""
                if node.is_bookmarked:
                    suffix += " *"
                if node.is_ghost:
                    suffix += " (not found)"
                lines.append("  " * depth + prefix + text + suffix)
            walk(node.children, depth + 1 if shown else depth)

    walk(controller.tree.roots, 0)
    return lines


def main(argv=None):
    """
    Configure logging, index the transcript and print the visible outline.
    """
    setup_logging()
    args = build_parser().parse_args(argv)

    path = Path(args.file)
    try:
        html = path.read_bytes()
    except OSError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        return 2

    settings = load_settings()
    try:
        source = HtmlTranscriptSource(
            html,
            name=path.name,
            user_query_xpath=settings.user_query_xpath,
            signature_context_chars=settings.signature_context_chars,
            user_query_max_chars=settings.user_query_max_chars,
            line_height=settings.estimated_line_height,
            chars_per_line=settings.estimated_chars_per_line,
        )
    except ContentSourceError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    bookmarks = InMemoryBookmarkStore()
    controller = OutlineController(source, bookmarks, session_key=str(path.resolve()), settings=settings)

    # Static files carry their bookmarks as a data attribute on the heading.
    # Each toggle rebuilds the tree, so collect indices first.
    marked = [
        node.index for node in controller.tree.nodes
        if node.handle is not None and node.handle.element.get("data-bookmarked") is not None
    ]
    for index in marked:
        controller.toggle_bookmark(index)

    if args.no_user_queries and controller.include_user_queries:
        controller.toggle_group_mode()
    if args.level is not None:
        controller.set_level(args.level)
    if args.search:
        controller.set_search_query(args.search)
    if args.bookmarks:
        controller.toggle_bookmark_mode()

    for line in render_outline(controller):
        print(line)
    if args.search:
        print(f"\n{controller.match_count} match(es)")

    controller.dispose()
    logger.info("===== Outline printed for %s =====", path.name)
    return 0


if __name__ == '__main__':
    sys.exit(main())
