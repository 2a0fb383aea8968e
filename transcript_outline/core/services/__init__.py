from __future__ import annotations

"""Outline services (visibility, search, highlight, scroll tracking, bookmarks).

Services are UI-agnostic and instantiated directly by the controller layer.
"""

from .visibility_service import compute_visibility, has_bookmark_in_subtree  # noqa: F401
from .search_service import apply_search, compile_search_pattern, highlight_segments  # noqa: F401
from .highlight_service import resolve_visible_highlight  # noqa: F401
from .scroll_tracker import ScrollTracker  # noqa: F401
from .bookmark_service import Bookmark, InMemoryBookmarkStore  # noqa: F401

__all__: list[str] = [
    "compute_visibility",
    "has_bookmark_in_subtree",
    "apply_search",
    "compile_search_pattern",
    "highlight_segments",
    "resolve_visible_highlight",
    "ScrollTracker",
    "Bookmark",
    "InMemoryBookmarkStore",
]
