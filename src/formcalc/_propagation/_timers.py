"""Timer sources for debounce windows."""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerScheduler(Protocol):
    """Anything that can run a callback after a delay.

    ``asyncio`` event loops satisfy this protocol through ``loop.call_later``.
    """

    def call_later(self, delay: float, callback: Callable[[], object], /) -> TimerHandle: ...


class _ManualHandle:
    __slots__ = ("callback", "cancelled", "due_ms")

    def __init__(self, due_ms: int, callback: Callable[[], object]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerScheduler:
    """Timer scheduler driven by a virtual clock.

    Nothing fires until ``advance`` moves the clock past a timer's due time,
    which makes debounce behavior deterministic in tests and replays.

    Example:
        >>> timers = ManualTimerScheduler()
        >>> fired = []
        >>> _ = timers.call_later(0.3, lambda: fired.append(timers.now_ms))
        >>> timers.advance(299); fired
        []
        >>> timers.advance(1); fired
        [300]

    """

    def __init__(self, start_ms: int = 0) -> None:
        self.now_ms = start_ms
        self._queue: list[tuple[int, int, _ManualHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], object], /) -> _ManualHandle:
        """Schedule ``callback`` to run ``delay`` seconds from now."""
        handle = _ManualHandle(self.now_ms + round(delay * 1000), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._counter), handle))
        return handle

    def time(self) -> float:
        """Current virtual time in seconds."""
        return self.now_ms / 1000

    @property
    def pending(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, ms: int) -> None:
        """Move the clock forward by ``ms``, running every timer that falls due.

        Timers fire in due order at their own due time. Timers scheduled by a
        callback fire within the same call if they fall due before the target.
        """
        if ms < 0:
            msg = f"Cannot move the clock backwards (advance by {ms} ms)"
            raise ValueError(msg)
        target = self.now_ms + ms
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now_ms = due_ms
            logger.debug("Timer due at %d ms fired", due_ms)
            handle.callback()
        self.now_ms = target

    def advance_to(self, at_ms: int) -> None:
        """Move the clock to ``at_ms`` (no-op if already past it)."""
        self.advance(max(0, at_ms - self.now_ms))
