"""
Timers for the delayed transitions of the game machine.

Every timer is owned by the state that scheduled it and is cancelled when
that state is left, so a late firing can never touch a newer context.
Nothing here uses threads: due timers run when the owner of the clock
pumps it (``advance`` on the virtual clock, ``run_due`` on the wall
clock).
"""
import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


class TimerHandle():
    def __init__(self, due: float, callback: Callable[[], None], label: str = ''):
        self.due       = due
        self.callback  = callback
        self.label     = label
        self.cancelled = False
        self.fired     = False

    def __repr__(self) -> str:
        state = 'cancelled' if self.cancelled else 'fired' if self.fired else 'pending'
        return f'TimerHandle({self.label or "?"} @ {self.due:.0f}ms, {state})'

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self):
        self.cancelled = True


class Scheduler(ABC):
    """Priority queue of timers keyed on milliseconds from ``now()``."""

    def __init__(self):
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    @abstractmethod
    def now(self) -> float:
        raise NotImplementedError

    def call_later(
            self,
            delay_ms : float,
            callback : Callable[[], None],
            label    : str = '',
    ) -> TimerHandle:
        handle = TimerHandle(self.now() + delay_ms, callback, label)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def pending(self) -> List[TimerHandle]:
        return sorted(
            (handle for _, _, handle in self._queue if handle.active),
            key=lambda handle: handle.due,
        )

    def next_due(self) -> Optional[float]:
        self._drop_cancelled()
        if not self._queue:
            return None

        return self._queue[0][0]

    def _drop_cancelled(self):
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)

    def _fire_until(self, deadline: float) -> int:
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0][0] > deadline:
                return fired

            _, _, handle = heapq.heappop(self._queue)
            self._on_fire(handle)
            handle.fired = True
            logger.debug('Firing %r', handle)
            handle.callback()
            fired += 1

    def _on_fire(self, handle: TimerHandle):
        pass

    def run_due(self) -> int:
        return self._fire_until(self.now())


class VirtualClock(Scheduler):
    """Clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: float = 0):
        super().__init__()
        self._now = start

    def now(self) -> float:
        return self._now

    def _on_fire(self, handle: TimerHandle):
        # Callbacks scheduling new timers must see the time of the firing
        self._now = max(self._now, handle.due)

    def advance(self, ms: float) -> int:
        deadline = self._now + ms
        fired    = self._fire_until(deadline)
        self._now = deadline
        return fired

    def run_until_idle(self, max_timers: int = 100_000) -> int:
        fired = 0
        while fired < max_timers:
            due = self.next_due()
            if due is None:
                return fired
            fired += self.advance(due - self._now)

        return fired


class MonotonicClock(Scheduler):
    """Wall clock. Timers fire when ``run_due`` is called after their due time."""

    def now(self) -> float:
        return time.monotonic() * 1000

    def sleep_until_next(self, max_wait_ms: Optional[float] = None) -> bool:
        due = self.next_due()
        if due is None:
            return False

        wait = max(0.0, due - self.now())
        if max_wait_ms is not None:
            wait = min(wait, max_wait_ms)
        time.sleep(wait / 1000)
        self.run_due()
        return True
