from __future__ import annotations

"""Simple reusable text helpers.

These helpers are side-effect-free and contain no UI or disk I/O; they can be
used across all layers of the engine.
"""

import re

__all__ = [
    "normalize_text",
    "count_words",
    "truncate_text",
]

_WHITESPACE_RE = re.compile(r"\s+")

# CJK ideographs, kana and hangul count one "word" per character.
_CJK_RE = re.compile(
    r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af\uf900-\ufaff]"
)
_WORD_RE = re.compile(r"[A-Za-z0-9\u00c0-\u024f\u0400-\u04ff]+(?:['\u2019\-][A-Za-z0-9\u00c0-\u024f\u0400-\u04ff]+)*")


def normalize_text(text: object) -> str:
    """Collapse runs of whitespace and strip the ends.

    Non-string input (e.g. ``None`` from a malformed marker) yields ``""``.

    Examples:
        >>> normalize_text("  Deploy\\n  steps ")
        'Deploy steps'
    """
    if not isinstance(text, str):
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def count_words(text: object) -> int:
    """Return a word count that treats each CJK character as a word.

    Examples:
        >>> count_words("Hello, wide world")
        3
        >>> count_words("你好 world")
        3
    """
    if not isinstance(text, str) or not text:
        return 0
    cjk = len(_CJK_RE.findall(text))
    latin = len(_WORD_RE.findall(_CJK_RE.sub(" ", text)))
    return cjk + latin


def truncate_text(text: str, max_chars: int, ellipsis: str = "...") -> str:
    """Shorten *text* to at most *max_chars* characters plus *ellipsis*."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + ellipsis
