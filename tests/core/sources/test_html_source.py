import gc

import pytest

from transcript_outline.core.exceptions import ContentSourceError
from transcript_outline.core.outline import build_outline_tree
from transcript_outline.core.sources import ChangeKind, ContentSource, ElementHandle, HtmlTranscriptSource

TRANSCRIPT = """
<html><body>
<div data-role="user">How do I deploy the service to staging?</div>
<h1>Deployment</h1>
<p>Build the image first.</p>
<h2>Staging</h2>
<p>Push to the staging registry and run the job.</p>
<div data-role="user"><h3>Pasted heading</h3><p>And production?</p></div>
<h2 data-offset-top="400" data-height="30">Production</h2>
<p>Same steps.</p>
<div data-level="3">Custom level</div>
</body></html>
"""


@pytest.fixture
def source():
    return HtmlTranscriptSource(TRANSCRIPT, name="chat.html")


def test_implements_content_source_protocol(source):
    assert isinstance(source, ContentSource)


def test_scan_emits_turns_and_headings_in_document_order(source):
    markers = source.scan()
    assert [(m.is_turn_marker, m.text) for m in markers] == [
        (True, "How do I deploy the service to staging?"),
        (False, "Deployment"),
        (False, "Staging"),
        (True, "Pasted headingAnd production?"),
        (False, "Production"),
        (False, "Custom level"),
    ]
    assert [m.level for m in markers] == [0, "h1", "h2", 0, "h2", "3"]
    assert all(isinstance(m.handle, ElementHandle) for m in markers)


def test_signature_and_section_word_count(source):
    markers = {m.text: m for m in source.scan()}
    assert markers["Deployment"].signature == "Deployment::Build the image first."
    assert markers["Deployment"].word_count == 4
    assert markers["Staging"].word_count == 9
    assert markers["How do I deploy the service to staging?"].word_count == 8


def test_signature_context_is_limited():
    src = HtmlTranscriptSource(TRANSCRIPT, signature_context_chars=5)
    markers = {m.text: m for m in src.scan()}
    assert markers["Deployment"].signature == "Deployment::Build"


def test_turn_text_is_truncated():
    src = HtmlTranscriptSource(TRANSCRIPT, user_query_max_chars=10)
    first = src.scan()[0]
    assert first.text == "How do I d..."
    assert first.word_count == 8


def test_tree_from_scan(source):
    tree = build_outline_tree(source.scan())
    assert [n.text for n in tree.roots] == [
        "How do I deploy the service to staging?",
        "Pasted headingAnd production?",
    ]
    assert [c.text for c in tree.roots[0].children] == ["Deployment"]
    assert [c.text for c in tree.roots[1].children] == ["Production"]
    assert [c.text for c in tree.roots[1].children[0].children] == ["Custom level"]


def test_measure_prefers_exported_offsets(source):
    markers = {m.text: m for m in source.scan()}
    assert source.measure(markers["Production"].handle) == (400.0, 30.0)
    tops = [source.measure(markers[t].handle)[0] for t in ("How do I deploy the service to staging?", "Staging")]
    assert tops[0] < tops[1]
    assert source.measure("not a handle") is None


def test_resolve_handle_by_signature(source):
    markers = source.scan()
    assert source.resolve_handle(markers[1].signature) is markers[1].handle
    assert source.resolve_handle("unknown::") is None


def test_rescan_releases_previous_handles(source):
    tree = build_outline_tree(source.scan())
    assert tree.nodes[0].handle is not None
    source.scan()
    gc.collect()
    assert tree.nodes[0].handle is None


def test_custom_user_query_xpath():
    html = "<html><body><section class='ask'>Question?</section><h2>Answer</h2></body></html>"
    src = HtmlTranscriptSource(html, user_query_xpath="//section[@class='ask']")
    assert [m.is_turn_marker for m in src.scan()] == [True, False]


def test_blank_document_scans_empty():
    assert HtmlTranscriptSource("   ").scan() == []
    assert HtmlTranscriptSource().scan() == []


def test_invalid_input_raises_source_error():
    with pytest.raises(ContentSourceError) as excinfo:
        HtmlTranscriptSource(12345, name="broken")
    assert "[Source: broken]" in str(excinfo.value)


def test_invalid_xpath_raises_on_scan():
    src = HtmlTranscriptSource(TRANSCRIPT, user_query_xpath="//*[")
    with pytest.raises(ContentSourceError):
        src.scan()


def test_change_notifications(source):
    seen = []
    unsubscribe = source.subscribe(seen.append)
    source.load("<html><body><h1>New</h1></body></html>")
    source.notify_mutation()
    source.notify_resize()
    assert seen == [ChangeKind.STRUCTURE, ChangeKind.MUTATION, ChangeKind.RESIZE]
    assert [m.text for m in source.scan()] == ["New"]

    unsubscribe()
    source.notify_resize()
    assert len(seen) == 3
