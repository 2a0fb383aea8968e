from __future__ import annotations

"""Glue between host scroll events and the outline highlight.

Follow modes
------------
``current``
    Every scroll resolves the node at the viewport top and the entry to
    highlight (the node itself or its nearest visible ancestor).
``latest``
    The outline list should stay pinned to its end: :meth:`on_state_changed`
    reports when the node count grew.  Scroll highlighting still applies.
``manual``
    No tracking at all.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from transcript_outline.config.settings import FOLLOW_MODES
from transcript_outline.core.models import OutlineState

__all__ = ["ScrollSyncCoordinator", "ScrollSyncResult"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScrollSyncResult:
    """Outcome of one scroll event.

    ``active_index`` is the node at the viewport top, ``highlight_index`` the
    entry the renderer should highlight.
    """

    active_index: Optional[int] = None
    highlight_index: Optional[int] = None


class ScrollSyncCoordinator:
    """Route scroll and state events to the controller according to the follow mode."""

    def __init__(
        self,
        *,
        controller_getter: Callable[[], object],
        follow_mode: str = "current",
    ) -> None:
        self._get_controller = controller_getter
        self._follow_mode = follow_mode if follow_mode in FOLLOW_MODES else "current"
        self._last_scroll_height: Optional[float] = None
        self._last_node_count: Optional[int] = None

    @property
    def follow_mode(self) -> str:
        return self._follow_mode

    def set_follow_mode(self, mode: str) -> bool:
        if mode not in FOLLOW_MODES:
            return False
        changed = mode != self._follow_mode
        self._follow_mode = mode
        return changed

    # ------------------------------------------------------------------
    def on_scroll(
        self,
        scroll_top: float,
        viewport_height: float,
        scroll_height: Optional[float] = None,
    ) -> ScrollSyncResult:
        ctrl = self._get_controller()
        if ctrl is None:
            return ScrollSyncResult()

        # Content grew or shrank: cached offsets no longer match the layout.
        if scroll_height is not None:
            if self._last_scroll_height is not None and scroll_height != self._last_scroll_height:
                logger.debug("Scroll height changed %s -> %s", self._last_scroll_height, scroll_height)
                ctrl.mark_scroll_positions_stale()
            self._last_scroll_height = scroll_height

        if self._follow_mode == "manual":
            return ScrollSyncResult()

        active, highlight = ctrl.find_visible_highlight(scroll_top, viewport_height)
        return ScrollSyncResult(active_index=active, highlight_index=highlight)

    # ------------------------------------------------------------------
    def on_state_changed(self, state: OutlineState) -> bool:
        """Return True when the outline should scroll to its last entry."""
        count = _count_nodes(state)
        previous = self._last_node_count
        self._last_node_count = count
        if self._follow_mode != "latest" or previous is None:
            return False
        return count > previous


def _count_nodes(state: OutlineState) -> int:
    total = 0
    stack = list(state.tree)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.children)
    return total
