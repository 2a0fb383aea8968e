from __future__ import annotations

"""Outline tree construction from a flat content scan.

Single left-to-right pass over the markers with a stack of open ancestors.
A marker becomes the child of the most recent open ancestor with a strictly
smaller level; entries with a level greater than or equal to the current one
are popped first.  Conversational-turn markers carry the sentinel level
``TURN_MARKER_LEVEL`` so every turn closes all open headings and the headings
that follow nest under it.

After the pass, relative levels are normalised and bookmark state is read from
the bookmark index.  Bookmarks whose signature matched no scanned marker and
whose content cannot be resolved become ghost roots.
"""

import logging
import re
from typing import Any, Callable, Iterable, List, Optional, Set

from transcript_outline.core.models import (
    TURN_MARKER_LEVEL,
    OutlineMarker,
    OutlineNode,
    OutlineTree,
)
from transcript_outline.core.utils import normalize_text

__all__ = ["build_outline_tree", "parse_level"]

logger = logging.getLogger(__name__)

_LEVEL_RE = re.compile(r"^\s*[hH]?(\d+)\s*$")


def parse_level(raw: Any) -> Optional[int]:
    """Return a positive heading level from *raw*, or None when unusable.

    Accepts ints and strings such as ``"3"`` or ``"h3"``.  Booleans, zero,
    negatives and anything else are rejected.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, str):
        match = _LEVEL_RE.match(raw)
        if match:
            value = int(match.group(1))
            return value if value > 0 else None
    return None


def build_outline_tree(
    markers: Iterable[OutlineMarker],
    *,
    bookmark_index: Optional[Any] = None,
    session_key: str = "",
    resolve_handle: Optional[Callable[[str], Any]] = None,
    include_user_queries: bool = True,
) -> OutlineTree:
    """Build an :class:`OutlineTree` from markers given in document order.

    Parameters
    ----------
    markers
        Flat scan of the content, in document order.
    bookmark_index
        Optional :class:`~transcript_outline.core.sources.interfaces.BookmarkIndex`
        used to flag bookmarked nodes and synthesise ghost nodes.
    session_key
        Key under which bookmarks of the current transcript are stored.
    resolve_handle
        Optional ``signature -> handle | None`` lookup. A bookmark whose
        signature was not scanned but still resolves is not turned into a ghost.
    include_user_queries
        When False, turn markers are dropped before building (group mode off).

    Notes
    -----
    A marker with a missing or unparsable level is never dropped: it is placed
    one level below its would-be parent (level 1 when nothing is open).
    """
    nodes: List[OutlineNode] = []
    roots: List[OutlineNode] = []
    stack: List[OutlineNode] = []
    query_counter = 0
    repaired = 0

    for marker in markers or []:
        is_turn = bool(marker.is_turn_marker)
        if is_turn:
            if not include_user_queries:
                continue
            level = TURN_MARKER_LEVEL
        else:
            level = parse_level(marker.level)
            if level is None:
                level = stack[-1].level + 1 if stack else 1
                repaired += 1

        node = OutlineNode(
            index=len(nodes),
            level=level,
            relative_level=0,
            text=normalize_text(marker.text),
            word_count=max(0, int(marker.word_count or 0)),
            signature=marker.signature or "",
            is_user_query=is_turn,
        )
        node.attach_handle(marker.handle)
        if is_turn:
            query_counter += 1
            node.query_index = query_counter

        while stack and stack[-1].level >= level:
            stack.pop()
        if stack:
            stack[-1].add_child(node)
        else:
            roots.append(node)
        stack.append(node)
        nodes.append(node)

    if repaired:
        logger.debug("Repaired %d marker(s) with missing or invalid level", repaired)

    tree = OutlineTree(roots=roots, nodes=nodes)
    _assign_relative_levels(tree)

    if bookmark_index is not None:
        _apply_bookmarks(tree, bookmark_index, session_key, resolve_handle)

    logger.debug(
        "Built outline tree: %d node(s), %d root(s), %d ghost(s)",
        len(tree.nodes), len(tree.roots), len(tree.ghosts),
    )
    return tree


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _assign_relative_levels(tree: OutlineTree) -> None:
    """Normalise depths so the shallowest entry sits at 0.

    Turns take 0 and push headings down one step; without turns the
    shallowest heading is 0.
    """
    heading_levels = [n.level for n in tree.nodes if not n.is_user_query]
    has_turns = len(heading_levels) != len(tree.nodes)
    base = (min(heading_levels) if heading_levels else 1) - (1 if has_turns else 0)

    counts = {}
    for node in tree.nodes:
        if node.is_user_query:
            node.relative_level = 0
        else:
            node.relative_level = node.level - base
        counts[node.relative_level] = counts.get(node.relative_level, 0) + 1

    if counts:
        tree.min_relative_level = min(counts)
        tree.max_relative_level = max(counts)
    else:
        tree.min_relative_level = 0
        tree.max_relative_level = 0
    tree.level_counts = dict(sorted(counts.items()))


def _apply_bookmarks(
    tree: OutlineTree,
    bookmark_index: Any,
    session_key: str,
    resolve_handle: Optional[Callable[[str], Any]],
) -> None:
    live_signatures: Set[str] = set()
    for node in tree.nodes:
        if not node.signature:
            continue
        live_signatures.add(node.signature)
        node.is_bookmarked = bool(bookmark_index.is_bookmarked(session_key, node.signature))

    ghosts: List[OutlineNode] = []
    seen: Set[str] = set()
    bookmarks = list(bookmark_index.bookmarks_for_session(session_key) or [])
    bookmarks.sort(key=lambda b: (b.scroll_top is None, b.scroll_top or 0.0))
    for bookmark in bookmarks:
        signature = bookmark.signature
        if not signature or signature in live_signatures or signature in seen:
            continue
        if resolve_handle is not None and resolve_handle(signature) is not None:
            continue
        seen.add(signature)
        ghost = OutlineNode(
            index=len(tree.nodes) + len(ghosts),
            level=parse_level(bookmark.level) or 1,
            relative_level=tree.min_relative_level,
            text=normalize_text(bookmark.title),
            signature=signature,
            is_bookmarked=True,
            is_ghost=True,
            scroll_top=bookmark.scroll_top,
        )
        ghosts.append(ghost)

    if ghosts:
        logger.info("Synthesised %d ghost bookmark node(s) for session '%s'", len(ghosts), session_key)
        tree.nodes.extend(ghosts)
        tree.roots.extend(ghosts)
