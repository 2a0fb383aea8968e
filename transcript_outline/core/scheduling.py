from __future__ import annotations

"""Two-stage scheduling for scroll-offset invalidation.

Bursts of content mutations (e.g. a streaming reply) are coalesced by a
debounce timer; once it elapses, the stale mark is deferred to an idle moment.
If the host provides no idle signal, or the signal does not arrive in time, a
backstop timer fires instead.

Timers are injected as a ``timer_factory(delay_seconds, callback) -> handle``
callable where ``handle.cancel()`` stops the timer.  A Tk front-end can pass a
wrapper around ``widget.after``; an asyncio host can pass
``loop.call_later``.  The default uses :class:`threading.Timer`.
"""

import logging
import threading
from typing import Any, Callable, Optional, Protocol

__all__ = [
    "TimerHandle",
    "TimerFactory",
    "IdleRequest",
    "ThreadingTimerFactory",
    "StaleMarkScheduler",
]

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> Any:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]
IdleRequest = Callable[[Callable[[], None]], TimerHandle]


class _ArmingHandle:
    """Placeholder held while a timer is being created."""

    def cancel(self) -> None:
        return None


_ARMING = _ArmingHandle()


class ThreadingTimerFactory:
    """Default timer factory backed by daemon :class:`threading.Timer` objects."""

    def __call__(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(0.0, delay), callback)
        timer.daemon = True
        timer.start()
        return timer


class StaleMarkScheduler:
    """Coalesce stale notifications, then run *on_stale* at an idle moment.

    Parameters
    ----------
    on_stale : Callable[[], None]
        Invoked once per burst, after the debounce and idle stages.
    debounce_ms : int, default=300
        Quiet period that closes a burst.
    idle_timeout_ms : int, default=500
        Backstop delay for the idle stage.
    timer_factory : TimerFactory, optional
        Scheduling primitive; defaults to :class:`ThreadingTimerFactory`.
    request_idle : IdleRequest, optional
        Host idle signal ``request_idle(callback) -> handle``.
    """

    def __init__(
        self,
        on_stale: Callable[[], None],
        *,
        debounce_ms: int = 300,
        idle_timeout_ms: int = 500,
        timer_factory: Optional[TimerFactory] = None,
        request_idle: Optional[IdleRequest] = None,
    ) -> None:
        self._on_stale = on_stale
        self._debounce_s = max(0, int(debounce_ms)) / 1000.0
        self._idle_timeout_s = max(0, int(idle_timeout_ms)) / 1000.0
        self._timer_factory: TimerFactory = timer_factory or ThreadingTimerFactory()
        self._request_idle = request_idle

        # Timer callbacks may arrive on a worker thread with the default factory.
        self._lock = threading.Lock()
        self._debounce_handle: Optional[TimerHandle] = None
        self._backstop_handle: Optional[TimerHandle] = None
        self._idle_handle: Optional[TimerHandle] = None
        self._idle_pending = False
        self._generation = 0

    # --------------------------------------------------------------------- API

    @property
    def pending(self) -> bool:
        """True while a debounce or idle stage is outstanding."""
        return self._debounce_handle is not None or self._idle_pending

    def schedule(self) -> None:
        """Request a stale mark; calls during an open burst are coalesced."""
        with self._lock:
            if self._debounce_handle is not None:
                return
            self._debounce_handle = _ARMING
            generation = self._generation
        handle = self._timer_factory(self._debounce_s, self._debounce_elapsed)
        with self._lock:
            if self._debounce_handle is _ARMING:
                self._debounce_handle = handle
                return
            cancelled = generation != self._generation
        if cancelled:
            handle.cancel()

    def cancel(self) -> None:
        """Drop any pending stage (used on teardown)."""
        with self._lock:
            handles = (self._debounce_handle, self._backstop_handle, self._idle_handle)
            self._debounce_handle = None
            self._backstop_handle = None
            self._idle_handle = None
            self._idle_pending = False
            self._generation += 1
        for handle in handles:
            if handle is not None:
                handle.cancel()

    # ---------------------------------------------------------------- Internal

    def _debounce_elapsed(self) -> None:
        with self._lock:
            if self._debounce_handle is None:
                return  # cancelled after the timer fired
            self._debounce_handle = None
            if self._idle_pending:
                return
            self._idle_pending = True

        backstop = self._timer_factory(self._idle_timeout_s, self._idle_reached)
        idle = self._request_idle(self._idle_reached) if self._request_idle is not None else None

        with self._lock:
            if self._idle_pending:
                self._backstop_handle = backstop
                self._idle_handle = idle
                return
        # The idle stage already completed while the handles were being armed.
        for handle in (backstop, idle):
            if handle is not None:
                handle.cancel()

    def _idle_reached(self) -> None:
        with self._lock:
            if not self._idle_pending:
                return
            self._idle_pending = False
            leftovers = (self._backstop_handle, self._idle_handle)
            self._backstop_handle = None
            self._idle_handle = None
        for handle in leftovers:
            if handle is not None:
                handle.cancel()
        logger.debug("Scroll positions marked stale after idle")
        self._on_stale()
