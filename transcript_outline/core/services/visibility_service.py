from __future__ import annotations

"""Visibility computation for the outline display modes (UI-agnostic).

:func:`compute_visibility` is a pure function of ``(tree, config)``: it never
mutates the nodes or the configuration, keeps no state between calls and
never raises on well-typed input.  Renderers may therefore iterate a tree
while a new computation runs over it.

Per-node decision order
-----------------------
1. Subtree-bookmark lookup (memoised per call, keyed by node index).
2. Bookmark mode: a fully separate branch.  Only bookmark-relevant nodes are
   eligible; eligible nodes are shown unless an ancestor is collapsed or an
   active search neither matches them nor any descendant.
3. Normal / search mode: root-level nodes are shown unless an active search
   misses them; deeper nodes obey the display level (or a force-expanded
   ancestor), and while searching they must match, contain a match, or sit
   under a force-expanded ancestor.  A manual level override during search
   applies the display level as well.
4. Anything under a collapsed ancestor is hidden.
5. ``force_visible`` overrides every hide decision.
"""

from typing import Dict, Iterable, List, Optional, Union

from transcript_outline.core.models import ModeConfig, OutlineNode, OutlineTree, VisibilityMaps

__all__ = ["compute_visibility", "has_bookmark_in_subtree"]


def has_bookmark_in_subtree(node: OutlineNode, memo: Optional[Dict[int, bool]] = None) -> bool:
    """Return True if *node* or any descendant is bookmarked.

    *memo* is consulted before recursing and filled on the way back, so
    repeated asks during one pass are answered without a second walk.
    """
    if memo is None:
        memo = {}
    cached = memo.get(node.index)
    if cached is not None:
        return cached
    has = bool(node.is_bookmarked)
    if not has:
        for child in node.children:
            if has_bookmark_in_subtree(child, memo):
                has = True
                break
    memo[node.index] = has
    return has


def compute_visibility(
    tree: Union[OutlineTree, Iterable[OutlineNode]],
    config: ModeConfig,
) -> VisibilityMaps:
    """Return the parent and visibility maps for *tree* under *config*.

    Parameters
    ----------
    tree : OutlineTree or iterable of root nodes
        The outline snapshot to evaluate.
    config : ModeConfig
        Display-mode inputs.

    Returns
    -------
    VisibilityMaps
        ``parent_map`` holds an entry for every node walked, hidden ones
        included, so ancestor fallback can always climb the full chain.
    """
    roots: List[OutlineNode]
    if isinstance(tree, OutlineTree):
        roots = tree.roots
    else:
        roots = list(tree or [])

    parent_map: Dict[int, Optional[int]] = {}
    visible_map: Dict[int, bool] = {}
    memo: Dict[int, bool] = {}

    search_active = bool(config.search_query)

    def has_bookmark_in_descendants(node: OutlineNode) -> bool:
        return any(has_bookmark_in_subtree(child, memo) for child in node.children)

    def traverse(
        node: OutlineNode,
        parent_index: Optional[int],
        parent_collapsed: bool,
        parent_force_expanded: bool,
        ancestor_has_bookmark: bool,
    ) -> None:
        parent_map[node.index] = parent_index

        node_has_bookmark = has_bookmark_in_subtree(node, memo)
        search_relevant = node.is_match or node.has_matched_descendant

        if config.bookmark_mode:
            if node_has_bookmark or ancestor_has_bookmark:
                should_show = not parent_collapsed and (not search_active or search_relevant)
            else:
                should_show = False
        else:
            is_root = node.relative_level == config.min_relative_level
            level_allowed = node.relative_level <= config.display_level or parent_force_expanded

            if is_root:
                should_show = search_relevant if search_active else True
            elif not search_active:
                should_show = level_allowed
            else:
                should_show = search_relevant or parent_force_expanded
                if config.search_level_manual:
                    should_show = should_show and level_allowed

            if parent_collapsed:
                should_show = False

        if node.force_visible:
            should_show = True

        visible_map[node.index] = should_show

        if not node.children:
            return

        child_collapsed = node.collapsed or parent_collapsed
        child_force_expanded = node.force_expanded or parent_force_expanded
        child_ancestor_bookmark = ancestor_has_bookmark
        if config.bookmark_descendants and not child_ancestor_bookmark:
            child_ancestor_bookmark = bool(node.is_bookmarked) and not has_bookmark_in_descendants(node)

        for child in node.children:
            traverse(child, node.index, child_collapsed, child_force_expanded, child_ancestor_bookmark)

    for root in roots:
        traverse(root, None, False, False, False)

    return VisibilityMaps(parent_map=parent_map, visible_map=visible_map)
