from transcript_outline.core.services import Bookmark, InMemoryBookmarkStore
from transcript_outline.core.sources import BookmarkIndex


def test_store_satisfies_protocol():
    assert isinstance(InMemoryBookmarkStore(), BookmarkIndex)


def test_toggle_adds_then_removes():
    store = InMemoryBookmarkStore()
    assert store.toggle("chat", "Setup::Install", 120.0, title="Setup", level=2) is True
    assert store.is_bookmarked("chat", "Setup::Install")
    bookmark = store.bookmarks_for_session("chat")[0]
    assert isinstance(bookmark, Bookmark)
    assert (bookmark.title, bookmark.level, bookmark.scroll_top) == ("Setup", 2, 120.0)
    assert store.get_bookmark_id("chat", "Setup::Install") == bookmark.id

    assert store.toggle("chat", "Setup::Install", 0.0) is False
    assert not store.is_bookmarked("chat", "Setup::Install")
    assert store.get_bookmark_id("chat", "Setup::Install") is None


def test_sessions_are_independent():
    store = InMemoryBookmarkStore()
    store.add("chat-1", "A::", 1.0)
    store.add("chat-2", "A::", 2.0)
    assert [b.scroll_top for b in store.bookmarks_for_session("chat-2")] == [2.0]
    store.clear_session("chat-1")
    assert not store.is_bookmarked("chat-1", "A::")
    assert store.is_bookmarked("chat-2", "A::")
    store.clear_all()
    assert store.bookmarks_for_session("chat-2") == []


def test_remove_unknown_id():
    store = InMemoryBookmarkStore()
    assert store.remove("missing") is False


def test_listeners_notified_and_failures_isolated():
    store = InMemoryBookmarkStore()
    calls = []

    def broken():
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    unsubscribe = store.subscribe(lambda: calls.append("changed"))
    store.toggle("chat", "A::", 0.0)
    assert calls == ["changed"]

    unsubscribe()
    store.toggle("chat", "A::", 0.0)
    assert calls == ["changed"]
