from __future__ import annotations

"""Collaborator interface definitions.

Defines the contracts between the outline engine and the outside world: the
content source that scans a live transcript, and the bookmark index that
stores bookmarks by content signature.  The engine performs no document
inspection of its own; it only consumes what these collaborators provide.
"""

from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from transcript_outline.core.models import OutlineMarker

__all__ = [
    "ChangeKind",
    "ChangeListener",
    "Unsubscribe",
    "ContentSource",
    "BookmarkIndex",
]


class ChangeKind(str, Enum):
    """Kinds of change a content source can report."""

    STRUCTURE = "structure"  # markers added or removed: rebuild the tree
    MUTATION = "mutation"    # content changed in place: offsets may drift
    RESIZE = "resize"        # viewport/layout resized: offsets are stale now


ChangeListener = Callable[[ChangeKind], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class ContentSource(Protocol):
    """Protocol for transcript scanners.

    Handles returned in markers are opaque to the engine and are only held
    weakly; the source owns their lifetime.  Handles must therefore support
    weak references.
    """

    def scan(self) -> List[OutlineMarker]:
        """Return the current markers in document order.

        Raises:
            ContentSourceError: if the underlying document cannot be read.
        """
        ...

    def resolve_handle(self, signature: str) -> Optional[Any]:
        """Return a live handle for *signature*, or None if it is gone."""
        ...

    def measure(self, handle: Any) -> Optional[Tuple[float, float]]:
        """Return ``(top, height)`` of *handle* in scroll coordinates, if known."""
        ...

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        """Register *listener* for change notifications."""
        ...


@runtime_checkable
class BookmarkIndex(Protocol):
    """Protocol for bookmark stores keyed by ``(session_key, signature)``."""

    def is_bookmarked(self, session_key: str, signature: str) -> bool:
        ...

    def toggle(self, session_key: str, signature: str, fallback_offset: float, *,
               title: str = "", level: int = 0) -> bool:
        """Add or remove a bookmark; return True if it is now bookmarked."""
        ...

    def bookmarks_for_session(self, session_key: str) -> Sequence[Any]:
        """Return bookmark records exposing ``signature``, ``title``, ``level``
        and ``scroll_top``."""
        ...

    def subscribe(self, listener: Callable[[], None]) -> Unsubscribe:
        ...
