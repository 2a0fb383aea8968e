from __future__ import annotations

"""Search annotations for outline nodes.

Search is a plain case-insensitive substring match over node text.  User
input is always escaped before it reaches :mod:`re`, so a query such as
``"(a+"`` matches literally instead of raising.
"""

import logging
import re
from typing import Iterable, List, Optional, Pattern, Tuple, Union

from transcript_outline.core.models import OutlineNode, OutlineTree

__all__ = ["compile_search_pattern", "apply_search", "highlight_segments"]

logger = logging.getLogger(__name__)


def compile_search_pattern(query: str) -> Optional[Pattern[str]]:
    """Return a case-insensitive literal pattern for *query*, or None if blank."""
    if not isinstance(query, str):
        return None
    needle = query.strip()
    if not needle:
        return None
    return re.compile(f"({re.escape(needle)})", re.IGNORECASE)


def apply_search(tree: Union[OutlineTree, Iterable[OutlineNode]], query: str) -> int:
    """Recompute ``is_match`` / ``has_matched_descendant`` on every node.

    A blank query clears all annotations.  Returns the number of matching
    nodes.
    """
    roots = tree.roots if isinstance(tree, OutlineTree) else list(tree or [])
    pattern = compile_search_pattern(query)

    # Iterative post-order: children are annotated before their parent.
    match_count = 0
    stack: List[Tuple[OutlineNode, bool]] = [(root, False) for root in reversed(roots)]
    while stack:
        node, children_done = stack.pop()
        if not children_done:
            stack.append((node, True))
            for child in reversed(node.children):
                stack.append((child, False))
            continue
        node.is_match = bool(pattern is not None and pattern.search(node.text or ""))
        node.has_matched_descendant = any(
            child.is_match or child.has_matched_descendant for child in node.children
        )
        if node.is_match:
            match_count += 1

    if pattern is not None:
        logger.debug("Search %r matched %d node(s)", query, match_count)
    return match_count


def highlight_segments(text: str, query: str) -> List[Tuple[str, bool]]:
    """Split *text* into ``(segment, is_match)`` pairs for highlighted rendering.

    Examples:
        >>> highlight_segments("Deploy and redeploy", "deploy")
        [('Deploy', True), (' and re', False), ('deploy', True)]
    """
    if not text:
        return []
    pattern = compile_search_pattern(query)
    if pattern is None:
        return [(text, False)]
    segments: List[Tuple[str, bool]] = []
    # With a single capture group, re.split alternates plain / matched parts.
    for position, part in enumerate(pattern.split(text)):
        if part:
            segments.append((part, position % 2 == 1))
    return segments
