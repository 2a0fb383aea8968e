from __future__ import annotations

"""Exception classes for the outline engine.

The pure computation layers (tree building, visibility, highlight resolution)
never raise on well-typed input.  Exceptions are reserved for collaborators
that touch external content, so callers can degrade gracefully.
"""

from typing import Optional

__all__ = ["OutlineError", "ContentSourceError"]


class OutlineError(Exception):
    """Base exception for all outline-related errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ContentSourceError(OutlineError):
    """Raised when a content source cannot read or parse its document.

    The controller treats this as an empty scan rather than a crash
    condition.
    """

    def __init__(self, message: str, source_name: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.source_name = source_name

    def __str__(self) -> str:
        if self.source_name:
            return f"[Source: {self.source_name}] {super().__str__()}"
        return super().__str__()
