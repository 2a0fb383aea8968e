from transcript_outline.core.models import OutlineNode, OutlineState
from transcript_outline.ui.coordinators import ScrollSyncCoordinator, ScrollSyncResult


class FakeCtrl:
    def __init__(self):
        self.stale_calls = 0
        self.highlight_calls = []
        self.result = (4, 2)

    def mark_scroll_positions_stale(self):
        self.stale_calls += 1

    def find_visible_highlight(self, scroll_top, viewport_height):
        self.highlight_calls.append((scroll_top, viewport_height))
        return self.result


def make_state(count: int) -> OutlineState:
    roots = [OutlineNode(index=0, level=0, relative_level=0, text="Q")] if count else []
    for i in range(1, count):
        child = OutlineNode(index=i, level=1, relative_level=1, text=f"H{i}")
        roots[0].add_child(child)
    return OutlineState(
        tree=roots,
        display_level=6,
        min_relative_level=0,
        search_query="",
        search_level_manual=False,
        bookmark_mode=False,
        match_count=0,
        level_counts={},
        is_all_expanded=True,
    )


def test_current_mode_reports_active_and_highlight():
    ctrl = FakeCtrl()
    coord = ScrollSyncCoordinator(controller_getter=lambda: ctrl)
    result = coord.on_scroll(300, 600)
    assert result == ScrollSyncResult(active_index=4, highlight_index=2)
    assert ctrl.highlight_calls == [(300, 600)]


def test_manual_mode_does_not_track():
    ctrl = FakeCtrl()
    coord = ScrollSyncCoordinator(controller_getter=lambda: ctrl, follow_mode="manual")
    assert coord.on_scroll(300, 600) == ScrollSyncResult()
    assert ctrl.highlight_calls == []


def test_missing_controller():
    coord = ScrollSyncCoordinator(controller_getter=lambda: None)
    assert coord.on_scroll(0, 600, 2000) == ScrollSyncResult()


def test_scroll_height_change_marks_positions_stale():
    ctrl = FakeCtrl()
    coord = ScrollSyncCoordinator(controller_getter=lambda: ctrl, follow_mode="manual")
    coord.on_scroll(0, 600, 2000)
    assert ctrl.stale_calls == 0
    coord.on_scroll(50, 600, 2000)
    assert ctrl.stale_calls == 0
    coord.on_scroll(50, 600, 2400)
    assert ctrl.stale_calls == 1
    coord.on_scroll(50, 600)
    assert ctrl.stale_calls == 1


def test_follow_mode_validation():
    coord = ScrollSyncCoordinator(controller_getter=lambda: None, follow_mode="bogus")
    assert coord.follow_mode == "current"
    assert coord.set_follow_mode("latest") is True
    assert coord.set_follow_mode("latest") is False
    assert coord.set_follow_mode("sideways") is False
    assert coord.follow_mode == "latest"


def test_latest_mode_scrolls_to_end_when_outline_grows():
    coord = ScrollSyncCoordinator(controller_getter=lambda: None, follow_mode="latest")
    assert coord.on_state_changed(make_state(2)) is False
    assert coord.on_state_changed(make_state(3)) is True
    assert coord.on_state_changed(make_state(3)) is False
    assert coord.on_state_changed(make_state(1)) is False


def test_current_mode_never_scrolls_to_end():
    coord = ScrollSyncCoordinator(controller_getter=lambda: None)
    coord.on_state_changed(make_state(1))
    assert coord.on_state_changed(make_state(5)) is False
