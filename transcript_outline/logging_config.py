from __future__ import annotations

"""Central logging configuration for the transcript outline engine.

Call :func:`setup_logging` once at start-up.  Library modules only create
loggers with ``logging.getLogger(__name__)`` and never attach handlers.

Environment
-----------
``TRANSCRIPT_OUTLINE_LOG_DIR``
    Directory for file handlers (default ``logs``).
``TRANSCRIPT_OUTLINE_DEBUG_MODULES``
    Comma separated logger names switched to DEBUG after configuration.
"""

import copy
import logging
import logging.config
import os
from typing import Any, Dict

from transcript_outline.config import ConfigManager

__all__ = ["setup_logging"]

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Used when logging.yml is absent or rejected by dictConfig.
_FALLBACK = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"plain": {"format": _FORMAT}},
    "handlers": {
        "stderr": {"class": "logging.StreamHandler", "formatter": "plain", "level": "INFO"},
    },
    "root": {"level": "INFO", "handlers": ["stderr"]},
}


def setup_logging() -> None:
    """Apply ``logging.yml``, falling back to console-only output on error."""
    log_dir = os.environ.get("TRANSCRIPT_OUTLINE_LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    section = ConfigManager().get_logging_config()
    if isinstance(section, dict) and section.get("version"):
        try:
            logging.config.dictConfig(_relocate_log_files(section, log_dir))
        except (ValueError, TypeError, AttributeError, ImportError, OSError) as exc:
            print(f"Logging config rejected, using console only: {exc}")
            _use_fallback()
        else:
            logging.getLogger(__name__).info("Logging configured, files under %s", log_dir)
    else:
        _use_fallback()

    _enable_debug_loggers(os.environ.get("TRANSCRIPT_OUTLINE_DEBUG_MODULES", ""))


def _relocate_log_files(section: Dict[str, Any], log_dir: str) -> Dict[str, Any]:
    """Return a copy of *section* whose file handlers write into *log_dir*."""
    relocated = copy.deepcopy(section)
    for handler in (relocated.get("handlers") or {}).values():
        if isinstance(handler, dict) and "filename" in handler:
            handler["filename"] = os.path.join(log_dir, os.path.basename(str(handler["filename"])))
    return relocated


def _use_fallback() -> None:
    logging.config.dictConfig(_FALLBACK)
    logging.getLogger(__name__).error("Logging config unavailable, console fallback active")


def _enable_debug_loggers(names: str) -> None:
    for name in filter(None, (part.strip() for part in names.split(","))):
        target = logging.getLogger(name)
        target.setLevel(logging.DEBUG)
        if not any(h.level <= logging.DEBUG for h in target.handlers):
            handler = logging.StreamHandler()
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(_FORMAT))
            target.addHandler(handler)
        target.debug("DEBUG enabled by TRANSCRIPT_OUTLINE_DEBUG_MODULES")
