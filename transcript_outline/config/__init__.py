"""Packaged YAML defaults and the helpers that read them.

`ConfigManager` reads default files from this folder and merges user
overrides; `load_settings` turns the ``outline`` section into typed settings.
"""

from .manager import ConfigManager
from .settings import OutlineSettings, load_settings, FOLLOW_MODES

__all__ = [
    "ConfigManager",
    "OutlineSettings",
    "load_settings",
    "FOLLOW_MODES",
]
