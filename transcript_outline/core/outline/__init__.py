"""Outline tree construction.

Turns a flat, ordered list of content markers into a nested
:class:`~transcript_outline.core.models.OutlineTree`.
"""

from .tree_builder import build_outline_tree, parse_level

__all__ = [
    "build_outline_tree",
    "parse_level",
]
