from __future__ import annotations

"""Typed view over the ``outline`` configuration section."""

import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from transcript_outline.core.sources.html_source import DEFAULT_USER_QUERY_XPATH

__all__ = ["OutlineSettings", "load_settings", "FOLLOW_MODES"]

logger = logging.getLogger(__name__)

FOLLOW_MODES = ("current", "latest", "manual")


@dataclass(frozen=True)
class OutlineSettings:
    """Engine defaults read from ``outline.yml``.

    Build with :meth:`from_mapping`; unknown keys are ignored and values of the
    wrong type fall back to the field default.
    """

    expand_level: int = 6
    include_user_queries: bool = True
    follow_mode: str = "current"
    stale_debounce_ms: int = 300
    stale_idle_timeout_ms: int = 500
    activation_offset: float = 50.0
    bookmark_descendants: bool = False
    user_query_max_chars: int = 100
    signature_context_chars: int = 50
    estimated_line_height: float = 24.0
    estimated_chars_per_line: float = 80.0
    user_query_xpath: str = DEFAULT_USER_QUERY_XPATH

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "OutlineSettings":
        defaults = cls()
        if not isinstance(data, Mapping):
            return defaults

        values = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            default = getattr(defaults, f.name)
            coerced = _coerce(data[f.name], default)
            if coerced is None:
                logger.warning(
                    "Invalid value for outline setting '%s': %r (using %r)",
                    f.name, data[f.name], default,
                )
                continue
            values[f.name] = coerced

        follow_mode = values.get("follow_mode")
        if follow_mode is not None and follow_mode not in FOLLOW_MODES:
            logger.warning("Unknown follow_mode %r (using 'current')", follow_mode)
            values["follow_mode"] = "current"

        for key in ("stale_debounce_ms", "stale_idle_timeout_ms", "user_query_max_chars",
                    "signature_context_chars", "activation_offset"):
            if key in values and values[key] < 0:
                logger.warning("Negative value for outline setting '%s' clamped to 0", key)
                values[key] = type(values[key])(0)

        return cls(**values)


def _coerce(value: Any, default: Any) -> Any:
    """Return *value* converted to the type of *default*, or None."""
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(value, bool):
        return None
    if isinstance(default, int):
        return value if isinstance(value, int) else None
    if isinstance(default, float):
        return float(value) if isinstance(value, (int, float)) else None
    if isinstance(default, str):
        return value.strip() if isinstance(value, str) and value.strip() else None
    return None


def load_settings() -> OutlineSettings:
    """Return settings from the ``outline`` section of :class:`ConfigManager`."""
    from transcript_outline.config.manager import ConfigManager

    return OutlineSettings.from_mapping(ConfigManager().get_outline_config())
