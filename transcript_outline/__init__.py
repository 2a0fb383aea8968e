"""Top-level package for the transcript outline engine.

This package hosts the UI-agnostic implementation of the outline index: tree
construction from content markers, visibility computation for the display
modes, and scroll-position tracking.  Front-ends (e.g. a panel renderer, the
CLI in ``run.py``) should only depend on the public API exposed here rather
than importing internal modules directly.
"""

from .core.models import OutlineNode, OutlineTree, ModeConfig, VisibilityMaps  # re-export for convenience
from .ui.controllers import OutlineController

__all__: list[str] = [
    "OutlineNode",
    "OutlineTree",
    "ModeConfig",
    "VisibilityMaps",
    "OutlineController",
]
