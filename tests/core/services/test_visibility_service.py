import itertools

import pytest

from transcript_outline.core.models import ModeConfig, OutlineNode, OutlineTree
from transcript_outline.core.services import (
    apply_search,
    compute_visibility,
    has_bookmark_in_subtree,
    resolve_visible_highlight,
)


# ---------------------------
# Helpers
# ---------------------------

def make_tree(layout):
    """Build a tree from nested ``(text, relative_level, [children])`` tuples."""
    nodes = []

    def build(entry):
        text, rel, children = entry
        node = OutlineNode(index=len(nodes), level=rel + 1, relative_level=rel, text=text)
        nodes.append(node)
        for child in children:
            node.add_child(build(child))
        return node

    roots = [build(entry) for entry in layout]
    levels = [n.relative_level for n in nodes]
    return OutlineTree(roots=roots, nodes=nodes, min_relative_level=min(levels), max_relative_level=max(levels))


def by_text(tree):
    return {n.text: n for n in tree.nodes}


def visible_texts(tree, maps):
    return {n.text for n in tree.nodes if maps.is_visible(n.index)}


@pytest.fixture
def chain():
    """A (0) -> B (1) -> C (2)."""
    return make_tree([("A", 0, [("B", 1, [("C", 2, [])])])])


@pytest.fixture
def forest():
    return make_tree([
        ("A", 0, [
            ("B", 1, [("C", 2, []), ("C2", 2, [])]),
            ("B2", 1, []),
        ]),
        ("D", 0, [("E", 1, [("F", 2, [])])]),
    ])


# ---------------------------
# Scenarios
# ---------------------------

def test_display_level_hides_deeper_nodes(chain):
    maps = compute_visibility(chain, ModeConfig(display_level=1, min_relative_level=0))
    assert visible_texts(chain, maps) == {"A", "B"}
    c = by_text(chain)["C"]
    assert resolve_visible_highlight(c.index, maps.parent_map, maps.visible_map) == by_text(chain)["B"].index


def test_search_reveals_match_beyond_display_level(chain):
    chain.nodes[2].text = "foo bar"
    assert apply_search(chain, "foo") == 1
    a, b, _ = chain.nodes
    assert a.has_matched_descendant and b.has_matched_descendant
    maps = compute_visibility(chain, ModeConfig(display_level=1, min_relative_level=0, search_query="foo"))
    assert maps.visible_indices() == [0, 1, 2]


def test_bookmark_mode_shows_path_to_bookmark_only(forest):
    nodes = by_text(forest)
    nodes["C"].is_bookmarked = True
    maps = compute_visibility(forest, ModeConfig(display_level=0, min_relative_level=0, bookmark_mode=True))
    assert visible_texts(forest, maps) == {"A", "B", "C"}


def test_manual_level_during_search_applies_display_level(chain):
    chain.nodes[2].text = "foo"
    apply_search(chain, "foo")
    config = ModeConfig(display_level=1, min_relative_level=0, search_query="foo", search_level_manual=True)
    maps = compute_visibility(chain, config)
    assert visible_texts(chain, maps) == {"A", "B"}


def test_search_hides_irrelevant_branches(forest):
    nodes = by_text(forest)
    nodes["C2"].text = "needle"
    apply_search(forest, "needle")
    maps = compute_visibility(forest, ModeConfig(display_level=6, min_relative_level=0, search_query="needle"))
    assert visible_texts(forest, maps) == {"A", "B", "needle"}


def test_force_expanded_ancestor_shows_children_under_search(forest):
    nodes = by_text(forest)
    nodes["B"].text = "needle"
    apply_search(forest, "needle")
    nodes["B"].force_expanded = True
    maps = compute_visibility(forest, ModeConfig(display_level=6, min_relative_level=0, search_query="needle"))
    assert visible_texts(forest, maps) == {"A", "needle", "C", "C2"}


def test_collapsed_parent_hides_subtree(forest):
    nodes = by_text(forest)
    nodes["A"].collapsed = True
    maps = compute_visibility(forest, ModeConfig(display_level=6, min_relative_level=0))
    assert visible_texts(forest, maps) == {"A", "D", "E", "F"}


def test_force_expanded_parent_overrides_display_level(forest):
    nodes = by_text(forest)
    nodes["D"].force_expanded = True
    maps = compute_visibility(forest, ModeConfig(display_level=0, min_relative_level=0))
    assert visible_texts(forest, maps) == {"A", "D", "E", "F"}


def test_deepest_bookmark_descendants_opt_in(forest):
    nodes = by_text(forest)
    nodes["B"].is_bookmarked = True
    base = ModeConfig(display_level=6, min_relative_level=0, bookmark_mode=True)
    assert visible_texts(forest, compute_visibility(forest, base)) == {"A", "B"}

    with_descendants = ModeConfig(
        display_level=6, min_relative_level=0, bookmark_mode=True, bookmark_descendants=True
    )
    assert visible_texts(forest, compute_visibility(forest, with_descendants)) == {"A", "B", "C", "C2"}


def test_bookmark_descendants_skip_when_deeper_bookmark_exists(forest):
    nodes = by_text(forest)
    nodes["B"].is_bookmarked = True
    nodes["C"].is_bookmarked = True
    config = ModeConfig(display_level=6, min_relative_level=0, bookmark_mode=True, bookmark_descendants=True)
    # B is not the deepest bookmark on its path, so C2 is not carried.
    assert visible_texts(forest, compute_visibility(forest, config)) == {"A", "B", "C"}


def test_parent_map_covers_hidden_nodes(chain):
    maps = compute_visibility(chain, ModeConfig(display_level=0, min_relative_level=0))
    assert maps.parent_map == {0: None, 1: 0, 2: 1}
    assert maps.visible_map == {0: True, 1: False, 2: False}


def test_accepts_list_of_roots(chain):
    maps = compute_visibility(chain.roots, ModeConfig(display_level=1, min_relative_level=0))
    assert maps.visible_indices() == [0, 1]


def test_empty_tree():
    maps = compute_visibility(OutlineTree(), ModeConfig())
    assert maps.parent_map == {} and maps.visible_map == {}


# ---------------------------
# Properties
# ---------------------------

def _all_configs():
    for level, query, manual, bookmark in itertools.product(
        (0, 1, 2, 6), ("", "c"), (False, True), (False, True)
    ):
        yield ModeConfig(
            display_level=level,
            min_relative_level=0,
            search_query=query,
            search_level_manual=manual,
            bookmark_mode=bookmark,
        )


def _decorated_forest():
    tree = make_tree([
        ("A", 0, [
            ("B", 1, [("C", 2, []), ("C2", 2, [])]),
            ("B2", 1, []),
        ]),
        ("D", 0, [("E", 1, [("F", 2, [])])]),
    ])
    nodes = by_text(tree)
    nodes["C2"].is_bookmarked = True
    nodes["E"].is_bookmarked = True
    nodes["B"].collapsed = True
    return tree


def test_subtree_bookmark_recurrence():
    tree = _decorated_forest()
    memo = {}
    for node in tree.nodes:
        expected = node.is_bookmarked or any(has_bookmark_in_subtree(c) for c in node.children)
        assert has_bookmark_in_subtree(node, memo) == expected
    assert memo[by_text(tree)["A"].index] is True
    assert memo[by_text(tree)["B2"].index] is False


def test_compute_is_idempotent_and_pure():
    tree = _decorated_forest()
    apply_search(tree, "c")
    before = [(n.collapsed, n.force_expanded, n.force_visible, n.is_match) for n in tree.nodes]
    for config in _all_configs():
        first = compute_visibility(tree, config)
        second = compute_visibility(tree, config)
        assert first == second
    after = [(n.collapsed, n.force_expanded, n.force_visible, n.is_match) for n in tree.nodes]
    assert before == after


def test_bookmark_mode_dominance():
    tree = _decorated_forest()
    apply_search(tree, "c")
    for config in _all_configs():
        if not config.bookmark_mode:
            continue
        maps = compute_visibility(tree, config)
        for node in tree.nodes:
            if not has_bookmark_in_subtree(node):
                assert maps.visible_map[node.index] is False


def test_irrelevant_root_hidden_under_search():
    tree = _decorated_forest()
    apply_search(tree, "c")
    d = by_text(tree)["D"]
    assert not d.is_match and not d.has_matched_descendant
    for config in _all_configs():
        if config.search_query and not config.bookmark_mode:
            assert compute_visibility(tree, config).visible_map[d.index] is False


def test_force_visible_overrides_every_rule():
    tree = _decorated_forest()
    apply_search(tree, "zzz")
    target = by_text(tree)["C"]  # under a collapsed parent, beyond level 0, no match
    target.force_visible = True
    for config in _all_configs():
        assert compute_visibility(tree, config).visible_map[target.index] is True


def test_highlight_fallback_property():
    tree = _decorated_forest()
    for config in _all_configs():
        maps = compute_visibility(tree, config)
        for node in tree.nodes:
            resolved = resolve_visible_highlight(node.index, maps.parent_map, maps.visible_map)
            if maps.visible_map[node.index]:
                assert resolved == node.index
            else:
                expected = next(
                    (a.index for a in tree.ancestors(node.index) if maps.visible_map[a.index]), None
                )
                assert resolved == expected
