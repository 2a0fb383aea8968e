from __future__ import annotations

"""Ancestor fallback for the "current position" highlight."""

from typing import Mapping, Optional, Set

__all__ = ["resolve_visible_highlight"]


def resolve_visible_highlight(
    raw_index: Optional[int],
    parent_map: Mapping[int, Optional[int]],
    visible_map: Mapping[int, bool],
) -> Optional[int]:
    """Return *raw_index* if visible, else its nearest visible ancestor.

    Returns None when *raw_index* is None or the parent chain is exhausted
    without reaching a visible node, so a hidden entry is never highlighted.
    """
    current = raw_index
    seen: Set[int] = set()
    while current is not None and current not in seen:
        if visible_map.get(current):
            return current
        seen.add(current)
        current = parent_map.get(current)
    return None
