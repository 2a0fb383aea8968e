from __future__ import annotations

"""UI-facing outline state manager.

Owns the current :class:`OutlineTree` snapshot and the display-mode fields,
wires the content source and bookmark index to rebuilds, and exposes the
operations a renderer binds to its buttons, search box and scroll events.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from transcript_outline.config.settings import OutlineSettings
from transcript_outline.core.exceptions import ContentSourceError
from transcript_outline.core.models import (
    JumpTarget,
    ModeConfig,
    OutlineMarker,
    OutlineNode,
    OutlineState,
    OutlineTree,
    VisibilityMaps,
)
from transcript_outline.core.outline import build_outline_tree
from transcript_outline.core.scheduling import IdleRequest, StaleMarkScheduler, TimerFactory
from transcript_outline.core.services import (
    ScrollTracker,
    apply_search,
    compute_visibility,
    resolve_visible_highlight,
)
from transcript_outline.core.sources.interfaces import BookmarkIndex, ChangeKind, ContentSource

__all__ = ["OutlineController"]

logger = logging.getLogger(__name__)

StateListener = Callable[[OutlineState], None]
NodeRef = Union[OutlineNode, int]


class OutlineController:
    """Controller coordinating outline state with its collaborators.

    Parameters
    ----------
    source : ContentSource
        Scanner over the live transcript.
    bookmark_index : BookmarkIndex, optional
        Bookmark storage; without one, bookmark operations are no-ops.
    session_key : str
        Key under which bookmarks of this transcript are stored.
    settings : OutlineSettings, optional
        Engine defaults; see :func:`~transcript_outline.config.load_settings`.
    timer_factory, request_idle : optional
        Scheduling primitives forwarded to :class:`StaleMarkScheduler`.

    Notes
    -----
    - This controller is conservative and non-raising for routine operations;
      unknown nodes or indices make methods return ``False`` / ``None``.
    - Nodes are passed either as :class:`OutlineNode` objects of the current
      snapshot or as their dense index.  Nodes of an older snapshot are
      rejected.
    - Listeners receive a fresh :class:`OutlineState` after every change.
    """

    def __init__(
        self,
        source: ContentSource,
        bookmark_index: Optional[BookmarkIndex] = None,
        *,
        session_key: str = "",
        settings: Optional[OutlineSettings] = None,
        timer_factory: Optional[TimerFactory] = None,
        request_idle: Optional[IdleRequest] = None,
    ) -> None:
        self.source = source
        self.bookmark_index = bookmark_index
        self.session_key = session_key
        self.settings = settings or OutlineSettings()

        # Display-mode state
        self.display_level: int = self.settings.expand_level
        self.search_query: str = ""
        self.search_level_manual: bool = False
        self.bookmark_mode: bool = False
        self.include_user_queries: bool = self.settings.include_user_queries
        self.match_count: int = 0
        self.is_all_expanded: bool = False

        self._tree = OutlineTree()
        self._listeners: List[StateListener] = []
        self._applying_bookmark = False
        self._disposed = False

        self._tracker = ScrollTracker(source.measure, activation_offset=self.settings.activation_offset)
        self._scheduler = StaleMarkScheduler(
            self.mark_scroll_positions_stale,
            debounce_ms=self.settings.stale_debounce_ms,
            idle_timeout_ms=self.settings.stale_idle_timeout_ms,
            timer_factory=timer_factory,
            request_idle=request_idle,
        )

        self._unsubscribers: List[Callable[[], None]] = [source.subscribe(self._on_content_changed)]
        if bookmark_index is not None:
            self._unsubscribers.append(bookmark_index.subscribe(self._on_bookmarks_changed))

        self.refresh()

    # ---------------------------------------------------------------------------------
    # State access
    # ---------------------------------------------------------------------------------

    @property
    def tree(self) -> OutlineTree:
        return self._tree

    def get_state(self) -> OutlineState:
        return OutlineState(
            tree=list(self._tree.roots),
            display_level=self.display_level,
            min_relative_level=self._tree.min_relative_level,
            search_query=self.search_query,
            search_level_manual=self.search_level_manual,
            bookmark_mode=self.bookmark_mode,
            match_count=self.match_count,
            level_counts=dict(self._tree.level_counts),
            is_all_expanded=self.is_all_expanded,
            include_user_queries=self.include_user_queries,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def mode_config(self) -> ModeConfig:
        return ModeConfig(
            display_level=self.display_level,
            min_relative_level=self._tree.min_relative_level,
            search_query=self.search_query,
            search_level_manual=self.search_level_manual,
            bookmark_mode=self.bookmark_mode,
            bookmark_descendants=self.settings.bookmark_descendants,
        )

    def compute_visibility(self) -> VisibilityMaps:
        return compute_visibility(self._tree, self.mode_config())

    # ---------------------------------------------------------------------------------
    # Expansion and levels
    # ---------------------------------------------------------------------------------

    def toggle_node(self, node: NodeRef) -> bool:
        """Collapse a node whose children are shown, otherwise expand it.

        Expanding a node whose children lie beyond the display level marks it
        ``force_expanded`` so they appear anyway.

        Returns
        -------
        bool
            True if the node was toggled, False for unknown or childless nodes.
        """
        target = self._resolve_node(node)
        if target is None or not target.has_children():
            return False

        if self._children_shown(target):
            target.collapsed = True
            target.force_expanded = False
        else:
            target.collapsed = False
            if target.children[0].relative_level > self.display_level:
                target.force_expanded = True

        self._update_all_expanded()
        self._notify()
        return True

    def expand_all(self) -> bool:
        if self.bookmark_mode:
            return False
        self.display_level = max(self._tree.max_relative_level, self._tree.min_relative_level)
        for n in self._tree.nodes:
            n.collapsed = False
        self._update_all_expanded()
        self._notify()
        return True

    def collapse_all(self) -> bool:
        if self.bookmark_mode:
            return False
        self.display_level = self._tree.min_relative_level
        for n in self._tree.nodes:
            n.force_expanded = False
        self._update_all_expanded()
        self._notify()
        return True

    def set_level(self, level: int) -> bool:
        """Apply a display level and drop every manual expand/collapse flag.

        During an active search the level becomes a manual override that the
        search filter honours as well.
        """
        if isinstance(level, bool) or not isinstance(level, int):
            return False
        self.display_level = max(0, level)
        for n in self._tree.nodes:
            n.collapsed = False
            n.force_expanded = False
        if self.search_query:
            self.search_level_manual = True
        self._update_all_expanded()
        self._notify()
        return True

    # ---------------------------------------------------------------------------------
    # Search and modes
    # ---------------------------------------------------------------------------------

    def set_search_query(self, query: str) -> bool:
        """Annotate the tree for *query*; a blank query clears the search.

        Returns True if the effective query changed.
        """
        normalized = query.strip() if isinstance(query, str) else ""
        if normalized == self.search_query:
            return False
        self.search_query = normalized
        self.search_level_manual = False
        self.match_count = apply_search(self._tree, normalized)
        self._notify()
        return True

    def toggle_bookmark_mode(self) -> bool:
        """Flip bookmark mode and return the new value."""
        self.bookmark_mode = not self.bookmark_mode
        logger.debug("Bookmark mode %s", "on" if self.bookmark_mode else "off")
        self._notify()
        return self.bookmark_mode

    def toggle_group_mode(self) -> bool:
        """Flip whether conversational turns are part of the tree; returns the new value."""
        self.include_user_queries = not self.include_user_queries
        logger.debug("Group mode %s", "on" if self.include_user_queries else "off")
        self.refresh()
        return self.include_user_queries

    # ---------------------------------------------------------------------------------
    # Bookmarks
    # ---------------------------------------------------------------------------------

    def toggle_bookmark(self, node: NodeRef) -> bool:
        """Add or remove the bookmark for *node*'s signature.

        The fallback offset saved with a new bookmark is the node's current
        scroll offset (or the saved offset of a ghost).  Returns True if the
        bookmark index was updated.
        """
        if self.bookmark_index is None:
            return False
        target = self._resolve_node(node)
        if target is None or not target.signature:
            return False

        if target.is_ghost:
            offset = target.scroll_top or 0.0
        else:
            offset = self._tracker.offset_of(target.index) or 0.0

        self._applying_bookmark = True
        try:
            now_bookmarked = self.bookmark_index.toggle(
                self.session_key,
                target.signature,
                offset,
                title=target.text,
                level=target.level,
            )
        finally:
            self._applying_bookmark = False

        logger.info(
            "Bookmark %s: %s", "added" if now_bookmarked else "removed", target.text or target.signature
        )
        self.refresh()
        return True

    # ---------------------------------------------------------------------------------
    # Scroll tracking
    # ---------------------------------------------------------------------------------

    def find_visible_item_index(self, scroll_top: float, viewport_height: float) -> Optional[int]:
        return self._tracker.find_visible_item_index(scroll_top, viewport_height)

    def find_visible_highlight(self, scroll_top: float, viewport_height: float) -> Tuple[Optional[int], Optional[int]]:
        """Return ``(raw_index, highlight_index)`` for a viewport position.

        ``highlight_index`` is the raw node if visible, else its nearest
        visible ancestor.
        """
        raw = self.find_visible_item_index(scroll_top, viewport_height)
        if raw is None:
            return None, None
        maps = self.compute_visibility()
        return raw, resolve_visible_highlight(raw, maps.parent_map, maps.visible_map)

    def mark_scroll_positions_stale(self) -> None:
        self._tracker.mark_stale()

    def reveal_node(self, index: int) -> bool:
        """Expand the ancestor chain of *index* and force the node visible."""
        target = self._tree.get(index)
        if target is None:
            return False
        for ancestor in self._tree.ancestors(target.index):
            ancestor.collapsed = False
            ancestor.force_expanded = True
        target.force_visible = True
        self._update_all_expanded()
        self._notify()
        return True

    def clear_force_visible(self) -> bool:
        changed = False
        for n in self._tree.nodes:
            if n.force_visible:
                n.force_visible = False
                changed = True
        if changed:
            self._notify()
        return changed

    def locate_current(self, scroll_top: float, viewport_height: float) -> Optional[int]:
        """Reveal the node at the viewport position, clearing any active search.

        Returns the revealed index, or None when nothing resolves.
        """
        if self.search_query:
            self.set_search_query("")
        index = self.find_visible_item_index(scroll_top, viewport_height)
        if index is None:
            return None
        self.reveal_node(index)
        return index

    def resolve_jump_target(self, node: NodeRef) -> JumpTarget:
        """Return where activating *node* should navigate to."""
        target = self._resolve_node(node)
        if target is None:
            return JumpTarget("missing")
        if target.is_ghost:
            if target.scroll_top is None:
                return JumpTarget("missing")
            return JumpTarget("offset", offset=target.scroll_top)

        handle = target.handle
        if handle is None and target.signature:
            handle = self.source.resolve_handle(target.signature)
            if handle is not None:
                target.attach_handle(handle)
        if handle is None:
            return JumpTarget("missing")
        return JumpTarget("handle", handle=handle)

    # ---------------------------------------------------------------------------------
    # Rebuild and teardown
    # ---------------------------------------------------------------------------------

    def refresh(self) -> None:
        """Rescan the source and rebuild the tree.

        Manual ``collapsed`` / ``force_expanded`` / ``force_visible`` flags
        survive the rebuild for nodes whose signature is still present.
        """
        if self._disposed:
            return
        flags = self._collect_flags()

        markers: List[OutlineMarker]
        try:
            markers = list(self.source.scan() or [])
        except ContentSourceError as exc:
            logger.warning("Content scan failed, showing an empty outline: %s", exc)
            markers = []

        tree = build_outline_tree(
            markers,
            bookmark_index=self.bookmark_index,
            session_key=self.session_key,
            resolve_handle=self.source.resolve_handle,
            include_user_queries=self.include_user_queries,
        )
        for signature, saved in flags.items():
            for n in tree.find_by_signature(signature):
                n.collapsed, n.force_expanded, n.force_visible = saved

        self._tree = tree
        self.match_count = apply_search(tree, self.search_query)
        self._tracker.set_tree(tree)
        self._update_all_expanded()
        self._notify()

    def dispose(self) -> None:
        """Unsubscribe from collaborators and cancel pending timers."""
        if self._disposed:
            return
        self._disposed = True
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._scheduler.cancel()
        self._listeners = []

    # ---------------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------------

    def _resolve_node(self, node: NodeRef) -> Optional[OutlineNode]:
        if isinstance(node, OutlineNode):
            current = self._tree.get(node.index)
            return current if current is node else None
        if isinstance(node, bool):
            return None
        return self._tree.get(node)

    def _children_shown(self, node: OutlineNode) -> bool:
        if node.collapsed:
            return False
        if self.bookmark_mode or self.search_query or node.force_expanded:
            return True
        if any(a.force_expanded for a in self._tree.ancestors(node.index)):
            return True
        return node.children[0].relative_level <= self.display_level

    def _update_all_expanded(self) -> None:
        tree = self._tree
        self.is_all_expanded = (
            not tree.is_empty()
            and self.display_level >= tree.max_relative_level
            and not any(n.collapsed for n in tree.nodes)
        )

    def _collect_flags(self) -> Dict[str, Tuple[bool, bool, bool]]:
        flags: Dict[str, Tuple[bool, bool, bool]] = {}
        for n in self._tree.nodes:
            if n.signature and (n.collapsed or n.force_expanded or n.force_visible):
                flags.setdefault(n.signature, (n.collapsed, n.force_expanded, n.force_visible))
        return flags

    def _on_content_changed(self, kind: Any) -> None:
        try:
            change = ChangeKind(kind)
        except ValueError:
            logger.warning("Ignoring unknown content change: %r", kind)
            return
        if change is ChangeKind.STRUCTURE:
            self.refresh()
        elif change is ChangeKind.MUTATION:
            self._scheduler.schedule()
        else:
            self.mark_scroll_positions_stale()

    def _on_bookmarks_changed(self) -> None:
        if self._applying_bookmark:
            return  # toggle_bookmark refreshes once the index settles
        self.refresh()

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Outline state listener failed")
