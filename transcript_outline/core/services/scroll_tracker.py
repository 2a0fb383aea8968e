from __future__ import annotations

"""Scroll position to outline node resolution.

The tracker keeps a lazily built table of ``(top, bottom, index)`` offsets for
every node whose content handle is still alive.  Offsets depend on live
layout, so the table is only rebuilt on demand after :meth:`mark_stale`;
callers decide when layout has drifted enough to warrant it (see
:class:`~transcript_outline.core.scheduling.StaleMarkScheduler`).
"""

import bisect
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from transcript_outline.core.models import OutlineTree

__all__ = ["ScrollTracker"]

logger = logging.getLogger(__name__)

MeasureFn = Callable[[Any], Optional[Tuple[float, float]]]


class ScrollTracker:
    """Map a viewport position to the node currently occupying it.

    Parameters
    ----------
    measure : Callable[[handle], Optional[tuple[float, float]]]
        Returns ``(top, height)`` of a live handle in scroll coordinates.
    activation_offset : float, default=0.0
        Tolerance below the viewport top: a node whose top lies within this
        distance already counts as current.
    """

    def __init__(self, measure: MeasureFn, *, activation_offset: float = 0.0) -> None:
        self._measure = measure
        self._activation_offset = max(0.0, float(activation_offset))
        self._tree: Optional[OutlineTree] = None
        self._entries: List[Tuple[float, float, int]] = []
        self._tops: List[float] = []
        self._stale = True
        self.rebuild_count = 0

    # --------------------------------------------------------------------- API

    @property
    def is_stale(self) -> bool:
        return self._stale

    def set_tree(self, tree: Optional[OutlineTree]) -> None:
        """Track a new tree snapshot; offsets are recomputed on next use."""
        self._tree = tree
        self.mark_stale()

    def mark_stale(self) -> None:
        self._stale = True

    def offsets(self) -> Dict[int, Tuple[float, float]]:
        """Return ``index -> (top, bottom)`` for every resolvable node."""
        self._ensure_fresh()
        return {index: (top, bottom) for top, bottom, index in self._entries}

    def offset_of(self, index: int) -> Optional[float]:
        """Return the top offset of node *index*, or None if unresolved."""
        span = self.offsets().get(index)
        return span[0] if span is not None else None

    def find_visible_item_index(self, scroll_top: float, viewport_height: float) -> Optional[int]:
        """Return the index of the node containing the viewport's top edge.

        The current node is the last one (in offset order) starting at or
        above ``scroll_top`` plus the activation offset.  When every node
        starts further down, the first one is the closest.  Returns None when
        no node resolves, e.g. mid-scroll during a structural change.
        """
        self._ensure_fresh()
        if not self._entries:
            return None
        tolerance = self._activation_offset
        if viewport_height and viewport_height > 0:
            tolerance = min(tolerance, float(viewport_height))
        edge = float(scroll_top or 0.0) + tolerance
        position = bisect.bisect_right(self._tops, edge) - 1
        if position >= 0:
            return self._entries[position][2]
        return self._entries[0][2]

    # ---------------------------------------------------------------- Internal

    def _ensure_fresh(self) -> None:
        if not self._stale:
            return
        # Cleared up front so a mark_stale() arriving mid-measure survives.
        self._stale = False
        entries: List[Tuple[float, float, int]] = []
        tree = self._tree
        if tree is not None:
            for node in tree.iter_preorder():
                if node.is_ghost:
                    continue
                handle = node.handle
                if handle is None:
                    continue
                try:
                    measured = self._measure(handle)
                except Exception as exc:
                    logger.debug("Could not measure node %d: %s", node.index, exc)
                    measured = None
                if measured is None:
                    continue
                top, height = measured
                entries.append((float(top), float(top) + max(0.0, float(height)), node.index))
        entries.sort(key=lambda e: (e[0], e[2]))
        self._entries = entries
        self._tops = [e[0] for e in entries]
        self.rebuild_count += 1
        logger.debug("Recomputed scroll offsets for %d node(s)", len(entries))
