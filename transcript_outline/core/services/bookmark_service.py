from __future__ import annotations

"""In-memory bookmark store (UI-agnostic).

Implements the :class:`~transcript_outline.core.sources.interfaces.BookmarkIndex`
contract.  Bookmarks are keyed by ``(session_key, signature)``; two distinct
headings producing the same signature share one bookmark.

Persistence is left to the host application: the store only keeps records in
memory and notifies subscribers whenever they change.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

__all__ = ["Bookmark", "InMemoryBookmarkStore"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bookmark:
    """One saved bookmark.

    Attributes
    ----------
    signature :
        Content-derived key used to re-associate the bookmark with a node.
    scroll_top :
        Fallback scroll offset used when the content can no longer be found.
    """

    id: str
    session_key: str
    title: str
    level: int
    signature: str
    scroll_top: float
    timestamp: float


class InMemoryBookmarkStore:
    """Bookmark records plus change subscription.

    Examples
    --------
    >>> store = InMemoryBookmarkStore()
    >>> store.toggle("chat-1", "Setup::Install the CLI", 120.0, title="Setup", level=2)
    True
    >>> store.is_bookmarked("chat-1", "Setup::Install the CLI")
    True
    """

    def __init__(self) -> None:
        self._bookmarks: List[Bookmark] = []
        self._listeners: List[Callable[[], None]] = []

    # --------------------------------------------------------------------- API

    def add(self, session_key: str, signature: str, scroll_top: float, *,
            title: str = "", level: int = 0) -> Bookmark:
        bookmark = Bookmark(
            id=str(uuid.uuid4()),
            session_key=session_key,
            title=title,
            level=level,
            signature=signature,
            scroll_top=float(scroll_top or 0.0),
            timestamp=time.time(),
        )
        self._bookmarks.append(bookmark)
        logger.debug("Bookmark added: %s (%s)", bookmark.id, signature)
        self._notify()
        return bookmark

    def remove(self, bookmark_id: str) -> bool:
        before = len(self._bookmarks)
        self._bookmarks = [b for b in self._bookmarks if b.id != bookmark_id]
        removed = len(self._bookmarks) != before
        if removed:
            logger.debug("Bookmark removed: %s", bookmark_id)
            self._notify()
        return removed

    def toggle(self, session_key: str, signature: str, fallback_offset: float, *,
               title: str = "", level: int = 0) -> bool:
        """Remove the bookmark for *signature* if present, else add it.

        Returns True when the signature is bookmarked after the call.
        """
        existing = self.get_bookmark_id(session_key, signature)
        if existing:
            self.remove(existing)
            return False
        self.add(session_key, signature, fallback_offset, title=title, level=level)
        return True

    def is_bookmarked(self, session_key: str, signature: str) -> bool:
        return self.get_bookmark_id(session_key, signature) is not None

    def get_bookmark_id(self, session_key: str, signature: str) -> Optional[str]:
        for bookmark in self._bookmarks:
            if bookmark.session_key == session_key and bookmark.signature == signature:
                return bookmark.id
        return None

    def bookmarks_for_session(self, session_key: str) -> List[Bookmark]:
        return [b for b in self._bookmarks if b.session_key == session_key]

    def clear_session(self, session_key: str) -> None:
        self._bookmarks = [b for b in self._bookmarks if b.session_key != session_key]
        self._notify()

    def clear_all(self) -> None:
        self._bookmarks = []
        self._notify()

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------------------------------------------- Internal

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Bookmark listener failed")
