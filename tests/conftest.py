"""Shared fixtures for the transcript outline test-suite.

Configuration is redirected to a per-test temporary directory so that no test
reads or writes the real user config, and the ``ConfigManager`` singleton is
reset around every test.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transcript_outline.config import ConfigManager
from transcript_outline.core.models import OutlineMarker

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class FakeTimer:
    def __init__(self, clock: "FakeClock", due: float, callback: Callable[[], None], seq: int):
        self.clock = clock
        self.due = due
        self.callback = callback
        self.seq = seq
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self in self.clock.timers:
            self.clock.timers.remove(self)


class FakeClock:
    """Manual timer factory: ``clock(delay, callback)`` schedules, ``advance()`` fires."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[FakeTimer] = []
        self._seq = 0

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        self._seq += 1
        timer = FakeTimer(self, self.now + delay, callback, self._seq)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return len(self.timers)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if t.due <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.timers.remove(timer)
            self.now = max(self.now, timer.due)
            timer.callback()
        self.now = target


class FakeHandle:
    """Weak-referenceable stand-in for a content element."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return f"FakeHandle({self.name!r})"


def heading(level, text, handle=None, signature=None, word_count=0):
    return OutlineMarker(
        level=level,
        text=text,
        handle=handle,
        signature=signature if signature is not None else f"{text}::",
        word_count=word_count,
    )


def turn(text, handle=None, signature=None):
    return OutlineMarker(
        level=0,
        text=text,
        handle=handle,
        is_turn_marker=True,
        signature=signature if signature is not None else f"{text}::",
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handler and level changes made by ``setup_logging()``."""
    root = logging.getLogger()
    pkg = logging.getLogger("transcript_outline")
    saved_root = (list(root.handlers), root.level)
    saved_pkg = (list(pkg.handlers), pkg.level, pkg.propagate)
    yield
    for logger, handlers in ((root, saved_root[0]), (pkg, saved_pkg[0])):
        for h in logger.handlers:
            if h not in handlers:
                h.close()
        logger.handlers[:] = handlers
    root.setLevel(saved_root[1])
    pkg.setLevel(saved_pkg[1])
    pkg.propagate = saved_pkg[2]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point user config and log directories at a temporary location."""
    monkeypatch.setenv("TRANSCRIPT_OUTLINE_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("TRANSCRIPT_OUTLINE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("TRANSCRIPT_OUTLINE_DEBUG_MODULES", raising=False)
    ConfigManager.reset()
    yield tmp_path / "config"
    ConfigManager.reset()
