from __future__ import annotations

"""Shared data structures used across the outline engine.

This package exposes dataclasses and value objects used by services and the
controller layer. It is intentionally free of UI / I/O code so that the
contained objects can be reused in any context (unit-tests, CLI, panels, etc.).

Nodes live in an arena (:class:`OutlineTree.nodes`) where ``nodes[i].index ==
i``; every cross-structure map (parent map, visibility map, memo tables) is
keyed by that dense index rather than by object identity.
"""

import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

__all__ = [
    "OutlineMarker",
    "OutlineNode",
    "OutlineTree",
    "ModeConfig",
    "VisibilityMaps",
    "OutlineState",
    "JumpTarget",
    "TURN_MARKER_LEVEL",
]

# Raw level used for conversational-turn (user query) markers.
TURN_MARKER_LEVEL = 0


@dataclass(frozen=True)
class OutlineMarker:
    """One entry of a content scan, in document order.

    ``level`` is whatever the source could read (int, ``"h3"``, ``"3"`` or
    ``None``); the tree builder is responsible for interpreting it.
    """

    level: Any
    text: str
    handle: Any = None
    is_turn_marker: bool = False
    signature: str = ""
    word_count: int = 0


@dataclass(eq=False)
class OutlineNode:
    """Represents one entry (heading or conversational turn) in the outline.

    ``eq=False`` keeps identity semantics: two headings with the same text are
    still distinct nodes.
    """

    index: int
    level: int
    relative_level: int
    text: str
    word_count: int = 0
    signature: str = ""
    children: List["OutlineNode"] = field(default_factory=list)
    parent_index: Optional[int] = None
    is_user_query: bool = False
    query_index: Optional[int] = None

    # Manual / override UI state
    collapsed: bool = False
    force_expanded: bool = False
    force_visible: bool = False

    # Bookmark state
    is_bookmarked: bool = False
    is_ghost: bool = False
    scroll_top: Optional[float] = None  # saved fallback offset for ghost nodes

    # Search annotations
    is_match: bool = False
    has_matched_descendant: bool = False

    _handle_ref: Optional[Any] = field(default=None, repr=False)

    # ------------------------------------------------------------------
    @property
    def handle(self) -> Optional[Any]:
        """Return the live content handle, or None once it has been released."""
        ref = self._handle_ref
        if ref is None:
            return None
        return ref()

    def attach_handle(self, handle: Optional[Any]) -> None:
        """Keep a weak reference to *handle*; the node never owns the content."""
        self._handle_ref = weakref.ref(handle) if handle is not None else None

    def has_children(self) -> bool:
        """Return True if this node has child entries."""
        return len(self.children) > 0

    def add_child(self, child: "OutlineNode") -> None:
        """Append a child and record this node as its parent."""
        child.parent_index = self.index
        self.children.append(child)


@dataclass
class OutlineTree:
    """One snapshot of the outline.

    Attributes
    ----------
    roots
        Top-level nodes in display order (ghost nodes included).
    nodes
        Arena of every node, ``nodes[i].index == i``.
    min_relative_level / max_relative_level
        Observed relative-level bounds over live (non-ghost) nodes.
    level_counts
        Relative level -> number of live nodes at that level.
    """

    roots: List[OutlineNode] = field(default_factory=list)
    nodes: List[OutlineNode] = field(default_factory=list)
    min_relative_level: int = 0
    max_relative_level: int = 0
    level_counts: Dict[int, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def is_empty(self) -> bool:
        return not self.nodes

    def get(self, index: int) -> Optional[OutlineNode]:
        if isinstance(index, int) and 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    def iter_preorder(self) -> Iterator[OutlineNode]:
        """Yield nodes depth-first in document order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def ancestors(self, index: int) -> List[OutlineNode]:
        """Return the ancestor chain of *index*, nearest first."""
        chain: List[OutlineNode] = []
        node = self.get(index)
        while node is not None and node.parent_index is not None:
            node = self.get(node.parent_index)
            if node is not None:
                chain.append(node)
        return chain

    def find_by_signature(self, signature: str) -> List[OutlineNode]:
        return [n for n in self.nodes if n.signature == signature]

    @property
    def ghosts(self) -> List[OutlineNode]:
        return [n for n in self.roots if n.is_ghost]


@dataclass(frozen=True)
class ModeConfig:
    """Display-mode inputs for :func:`compute_visibility`.

    Frozen so that a computation can never mutate the configuration it was
    handed.
    """

    display_level: int = 6
    min_relative_level: int = 0
    search_query: str = ""
    search_level_manual: bool = False
    bookmark_mode: bool = False
    bookmark_descendants: bool = False


@dataclass(frozen=True)
class VisibilityMaps:
    """Result of one visibility computation.

    ``parent_map`` covers every node reached by the walk, hidden or not;
    root nodes map to ``None``.
    """

    parent_map: Dict[int, Optional[int]] = field(default_factory=dict)
    visible_map: Dict[int, bool] = field(default_factory=dict)

    def is_visible(self, index: int) -> bool:
        return bool(self.visible_map.get(index, False))

    def visible_indices(self) -> List[int]:
        return [i for i, shown in self.visible_map.items() if shown]


@dataclass(frozen=True)
class OutlineState:
    """Snapshot of controller state handed to renderers."""

    tree: List[OutlineNode]
    display_level: int
    min_relative_level: int
    search_query: str
    search_level_manual: bool
    bookmark_mode: bool
    match_count: int
    level_counts: Dict[int, int]
    is_all_expanded: bool
    include_user_queries: bool = True


@dataclass(frozen=True)
class JumpTarget:
    """Where a click on an outline entry should navigate.

    kind
        ``"handle"`` (live content), ``"offset"`` (saved scroll offset of a
        ghost bookmark) or ``"missing"``.
    """

    kind: str
    handle: Any = None
    offset: Optional[float] = None
