from __future__ import annotations

"""Configuration loading and access helpers.

Settings for the outline engine (display defaults, scheduling delays,
logging) live in YAML files shipped inside :mod:`transcript_outline.config`.
On first use each file is copied into a per-user directory where it can be
edited; the user copy is layered over the packaged one key by key.

User directory
--------------
* ``TRANSCRIPT_OUTLINE_CONFIG_DIR`` when set (tests, portable installs)
* Windows: ``%LOCALAPPDATA%\\TranscriptOutline\\config``
* elsewhere: ``~/.transcript_outline``
"""

import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]


def _user_config_dir() -> Path:
    explicit = os.environ.get("TRANSCRIPT_OUTLINE_CONFIG_DIR")
    if explicit:
        return Path(explicit)
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Local"
        return root / "TranscriptOutline" / "config"
    return Path.home() / ".transcript_outline"


def _packaged_text(filename: str) -> str:
    return pkg_resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")


def _seed_user_dir(target: Path, filenames) -> None:
    """Write any packaged file that is not yet present in *target*."""
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create config directory %s: %s", target, exc)
        return

    for name in filenames:
        dest = target / name
        if dest.exists():
            continue
        try:
            dest.write_text(_packaged_text(name), encoding="utf-8")
        except OSError as exc:
            logger.warning("Default %s not copied to %s: %s", name, target, exc)
        else:
            logger.info("Seeded user config %s", dest)


def _parse_mapping(text: str, origin: str) -> Optional[Dict[str, Any]]:
    """Parse YAML *text*; None when it is broken or not a mapping."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        logger.error("Unreadable YAML in %s: %s", origin, exc)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("Ignoring %s: top level must be a mapping, got %s", origin, type(data).__name__)
        return None
    return data


def _load_section(filename: str, user_dir: Path) -> Tuple[Dict[str, Any], str]:
    """Return the merged section and a short status for the startup log."""
    section: Dict[str, Any] = {}
    try:
        defaults = _parse_mapping(_packaged_text(filename), f"packaged {filename}")
    except OSError:
        logger.error("Packaged %s is missing", filename)
        defaults, status = None, "missing"
    else:
        status = "defaults" if defaults is not None else "invalid"
    if defaults:
        section.update(defaults)

    override_path = user_dir / filename
    if override_path.is_file():
        try:
            overrides = _parse_mapping(override_path.read_text(encoding="utf-8"), str(override_path))
        except OSError as exc:
            logger.error("Cannot read %s: %s", override_path, exc)
            overrides = None
        if overrides:
            section.update(overrides)
            status += "+user"
    return section, status


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Process-wide access to the YAML configuration sections."""

    _SECTIONS = {
        "outline": "outline.yml",
        "logging": "logging.yml",
    }

    def __init__(self) -> None:
        self._sections: Dict[str, Dict[str, Any]] = {}
        self._load()

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance; the next ``ConfigManager()`` rereads disk."""
        type(cls)._instance = None

    # ------------------------------------------------------------------
    # Section accessors
    # ------------------------------------------------------------------
    def get_outline_config(self) -> Dict[str, Any]:
        return self._sections.get("outline", {})

    def get_logging_config(self) -> Dict[str, Any]:
        return self._sections.get("logging", {})

    # ------------------------------------------------------------------
    def _load(self) -> None:
        user_dir = _user_config_dir()
        _seed_user_dir(user_dir, self._SECTIONS.values())

        report = []
        for key, filename in self._SECTIONS.items():
            self._sections[key], status = _load_section(filename, user_dir)
            report.append(f"{key}={status}")
        logger.info("Configuration loaded from %s (%s)", user_dir, ", ".join(report))
