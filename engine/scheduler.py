"""
Cooperative timer queue for combat pacing (roll animation, counter-turn
delays, hit flashes). Nothing here sleeps: the owner advances the clock,
either by explicit deltas (tests, CLI) or from wall time (web server).
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Event:
    def __init__(self, trigger_time: float, seq: int, callback: Callable, *args: Any, **kwargs: Any):
        self.trigger_time = trigger_time
        self.seq = seq
        self.callback = callback
        self.args = args
        self.kwargs = kwargs

    def __lt__(self, other: "Event") -> bool:
        return (self.trigger_time, self.seq) < (other.trigger_time, other.seq)


class Scheduler:
    def __init__(self, start_time: float = 0.0):
        self.events: List[Event] = []
        self.current_time = float(start_time)
        self._seq = itertools.count()

    def schedule(self, delay: float, callback: Callable, *args: Any, **kwargs: Any) -> Event:
        """Schedule a callback after `delay` seconds of scheduler time."""
        event = Event(self.current_time + max(0.0, float(delay)), next(self._seq), callback, *args, **kwargs)
        self.events.append(event)
        self.events.sort()
        return event

    def update(self, delta_seconds: float) -> int:
        """Advance the clock and fire every due event. Returns how many fired."""
        target = self.current_time + max(0.0, float(delta_seconds))
        fired = 0
        # Events scheduled by a callback fire in this same pass when due.
        while self.events and self.events[0].trigger_time <= target:
            event = self.events.pop(0)
            self.current_time = max(self.current_time, event.trigger_time)
            event.callback(*event.args, **event.kwargs)
            fired += 1
        self.current_time = target
        return fired

    def run_until_idle(self, max_events: int = 1000, sleep: Callable[[float], Any] | None = None) -> int:
        """
        Fire queued events in order until none are left.
        `sleep` (e.g. time.sleep) paces a terminal; tests leave it out.
        """
        fired = 0
        while self.events and fired < max_events:
            wait = self.events[0].trigger_time - self.current_time
            if sleep and wait > 0:
                sleep(wait)
            fired += self.update(max(0.0, wait))
        if self.events:
            logger.warning("Scheduler stopped with %d events still queued", len(self.events))
        return fired

    def cancel(self, event: Event) -> None:
        self.events = [e for e in self.events if e is not event]

    def cancel_all(self) -> None:
        self.events = []

    @property
    def pending(self) -> int:
        return len(self.events)


class RealtimeScheduler(Scheduler):
    """Scheduler whose clock follows time.monotonic(); call pump() on each request."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._firing = False
        super().__init__(start_time=clock())

    def schedule(self, delay: float, callback: Callable, *args: Any, **kwargs: Any) -> Event:
        # Outside a pump, delays count from now, not from the last pump.
        if not self._firing:
            self.current_time = max(self.current_time, self._clock())
        return super().schedule(delay, callback, *args, **kwargs)

    def update(self, delta_seconds: float) -> int:
        self._firing = True
        try:
            return super().update(delta_seconds)
        finally:
            self._firing = False

    def pump(self) -> int:
        return self.update(self._clock() - self.current_time)
