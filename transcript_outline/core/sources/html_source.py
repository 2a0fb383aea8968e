from __future__ import annotations

"""Reference content source for HTML chat transcripts.

Scans an HTML document with :mod:`lxml.html`:

- ``h1``-``h6`` elements (or any element carrying ``data-level``) become
  heading markers;
- elements matched by the user-query XPath become conversational-turn
  markers.

Headings inside a user query are part of the question, not of the outline,
and are skipped.

Each marker gets an :class:`ElementHandle` owned by the source.  Nodes only
keep weak references to handles, so a rescan releases every handle of the
previous snapshot.

Layout
------
A static document has no layout engine.  :meth:`HtmlTranscriptSource.measure`
reads ``data-offset-top``/``data-height`` when the host exported them, and
otherwise estimates offsets from the amount of text preceding the element.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from lxml import etree
from lxml import html as lxml_html

from transcript_outline.core.exceptions import ContentSourceError
from transcript_outline.core.models import OutlineMarker
from transcript_outline.core.sources.interfaces import ChangeKind, ChangeListener, Unsubscribe
from transcript_outline.core.utils import count_words, normalize_text, truncate_text

__all__ = ["ElementHandle", "HtmlTranscriptSource", "DEFAULT_USER_QUERY_XPATH"]

logger = logging.getLogger(__name__)

DEFAULT_USER_QUERY_XPATH = (
    "//*[@data-role='user' or @data-message-author-role='user' "
    "or contains(concat(' ', normalize-space(@class), ' '), ' user-query ')]"
)

_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}


class ElementHandle:
    """Live handle on one scanned element."""

    __slots__ = ("element", "signature", "estimated_top", "estimated_height", "__weakref__")

    def __init__(self, element: Any, signature: str, estimated_top: float, estimated_height: float) -> None:
        self.element = element
        self.signature = signature
        self.estimated_top = estimated_top
        self.estimated_height = estimated_height

    def __repr__(self) -> str:
        return f"ElementHandle({self.signature!r}, top={self.estimated_top:.0f})"


class HtmlTranscriptSource:
    """Content source over an HTML transcript.

    Parameters
    ----------
    html : str or bytes, optional
        Initial document; blank input yields an empty scan.
    name : str
        Label used in logs and errors.
    user_query_xpath : str
        XPath selecting user-query (turn) elements.
    signature_context_chars : int
        Characters of next-sibling text appended to the heading text to form
        the bookmark signature.
    user_query_max_chars : int
        Display truncation for turn-marker text (0 disables).
    line_height, chars_per_line : float
        Parameters of the text-length layout estimate.
    """

    def __init__(
        self,
        html: Union[str, bytes, None] = None,
        *,
        name: str = "transcript",
        user_query_xpath: str = DEFAULT_USER_QUERY_XPATH,
        signature_context_chars: int = 50,
        user_query_max_chars: int = 100,
        line_height: float = 24.0,
        chars_per_line: float = 80.0,
    ) -> None:
        self.name = name
        self._user_query_xpath = user_query_xpath
        self._signature_context_chars = max(0, int(signature_context_chars))
        self._user_query_max_chars = max(0, int(user_query_max_chars))
        self._line_height = float(line_height) if line_height and line_height > 0 else 24.0
        self._chars_per_line = float(chars_per_line) if chars_per_line and chars_per_line > 0 else 80.0

        self._document: Optional[Any] = None
        self._handles: List[ElementHandle] = []
        self._by_signature: Dict[str, ElementHandle] = {}
        self._listeners: List[ChangeListener] = []

        if html is not None:
            self._document = self._parse(html)

    # ------------------------------------------------------------------
    # Host-facing helpers
    # ------------------------------------------------------------------
    def load(self, html: Union[str, bytes, None]) -> None:
        """Replace the document and report a structural change."""
        self._document = self._parse(html)
        self._notify(ChangeKind.STRUCTURE)

    def notify_mutation(self) -> None:
        """Forward an in-place content mutation from the host."""
        self._notify(ChangeKind.MUTATION)

    def notify_resize(self) -> None:
        """Forward a viewport or layout resize from the host."""
        self._notify(ChangeKind.RESIZE)

    # ------------------------------------------------------------------
    # ContentSource protocol
    # ------------------------------------------------------------------
    def scan(self) -> List[OutlineMarker]:
        root = self._document
        self._handles = []
        self._by_signature = {}
        if root is None:
            return []

        try:
            query_elements: Set[Any] = set(root.xpath(self._user_query_xpath))
        except etree.XPathError as exc:
            raise ContentSourceError(
                f"Invalid user query XPath: {self._user_query_xpath}", self.name, exc
            ) from exc

        offsets = self._estimate_offsets(root)
        markers: List[OutlineMarker] = []

        for element in root.iter():
            if not isinstance(element.tag, str):
                continue  # comments / processing instructions
            is_turn = element in query_elements
            if is_turn:
                if self._has_ancestor_in(element, query_elements):
                    continue
            elif not self._is_heading(element) or self._has_ancestor_in(element, query_elements):
                continue

            full_text = normalize_text(element.text_content())
            if is_turn:
                text = truncate_text(full_text, self._user_query_max_chars)
                level: Any = 0
                word_count = count_words(full_text)
            else:
                text = full_text
                level = element.get("data-level") or element.tag
                word_count = self._section_word_count(element, query_elements)

            signature = self._make_signature(full_text, element)
            start, length = offsets.get(element, (0, len(full_text)))
            handle = ElementHandle(
                element,
                signature,
                estimated_top=self._chars_to_px(start),
                estimated_height=max(self._line_height, self._chars_to_px(length)),
            )
            self._handles.append(handle)
            # Colliding signatures resolve to the first element.
            self._by_signature.setdefault(signature, handle)

            markers.append(OutlineMarker(
                level=level,
                text=text,
                handle=handle,
                is_turn_marker=is_turn,
                signature=signature,
                word_count=word_count,
            ))

        logger.debug("Scanned %s: %d marker(s)", self.name, len(markers))
        return markers

    def resolve_handle(self, signature: str) -> Optional[ElementHandle]:
        return self._by_signature.get(signature)

    def measure(self, handle: Any) -> Optional[Tuple[float, float]]:
        if not isinstance(handle, ElementHandle):
            return None
        element = handle.element
        top = _float_attr(element, "data-offset-top")
        height = _float_attr(element, "data-height")
        return (
            top if top is not None else handle.estimated_top,
            height if height is not None else handle.estimated_height,
        )

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _parse(self, html: Union[str, bytes, None]) -> Optional[Any]:
        if html is None:
            return None
        if not isinstance(html, (str, bytes)):
            raise ContentSourceError(f"Unsupported document type: {type(html).__name__}", self.name)
        if not html.strip():
            return None
        try:
            return lxml_html.document_fromstring(html)
        except (etree.ParserError, ValueError) as exc:
            raise ContentSourceError(f"Could not parse transcript: {exc}", self.name, exc) from exc

    def _notify(self, kind: ChangeKind) -> None:
        for listener in list(self._listeners):
            try:
                listener(kind)
            except Exception:
                logger.exception("Change listener failed for %s (%s)", self.name, kind.value)

    @staticmethod
    def _is_heading(element: Any) -> bool:
        return element.tag in _HEADING_TAGS or element.get("data-level") is not None

    @staticmethod
    def _has_ancestor_in(element: Any, candidates: Set[Any]) -> bool:
        for ancestor in element.iterancestors():
            if ancestor in candidates:
                return True
        return False

    def _make_signature(self, text: str, element: Any) -> str:
        following = element.getnext()
        context = ""
        if following is not None and isinstance(following.tag, str):
            context = normalize_text(following.text_content())[: self._signature_context_chars]
        return f"{text}::{context}"

    def _section_word_count(self, heading: Any, query_elements: Set[Any]) -> int:
        """Words between *heading* and the next heading or turn among its siblings."""
        total = 0
        sibling = heading.getnext()
        while sibling is not None:
            if isinstance(sibling.tag, str):
                if sibling in query_elements or self._is_heading(sibling):
                    break
                total += count_words(sibling.text_content())
            sibling = sibling.getnext()
        return total

    @staticmethod
    def _estimate_offsets(root: Any) -> Dict[Any, Tuple[int, int]]:
        """Return ``element -> (chars before it, chars inside it)``."""
        offsets: Dict[Any, Tuple[int, int]] = {}
        starts: Dict[Any, int] = {}
        position = 0
        for event, element in etree.iterwalk(root, events=("start", "end")):
            if event == "start":
                starts[element] = position
                position += len(normalize_text(element.text))
            else:
                start = starts.pop(element, position)
                offsets[element] = (start, position - start)
                position += len(normalize_text(element.tail))
        return offsets

    def _chars_to_px(self, chars: int) -> float:
        return math.ceil(chars / self._chars_per_line) * self._line_height


def _float_attr(element: Any, name: str) -> Optional[float]:
    raw = element.get(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None

