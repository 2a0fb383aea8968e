"""Content-source and bookmark-index collaborators.

The engine consumes these through the protocols in :mod:`.interfaces`;
:class:`HtmlTranscriptSource` is the bundled reference scanner.
"""

from .interfaces import BookmarkIndex, ChangeKind, ContentSource
from .html_source import ElementHandle, HtmlTranscriptSource

__all__ = [
    "BookmarkIndex",
    "ChangeKind",
    "ContentSource",
    "ElementHandle",
    "HtmlTranscriptSource",
]
