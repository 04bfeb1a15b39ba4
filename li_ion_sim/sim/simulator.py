"""
Discrete-Event Simulator

This module provides the logical clock and scheduler that drive the cell model:
- Virtual time in seconds (monotonically non-decreasing)
- Relative scheduling of callbacks with cancellable handles
- Deterministic ordering (time, then insertion order)
- Stop time and finished flag
"""

import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional


class EventId:
    """
    Handle to a scheduled event.

    Returned by Simulator.schedule(). Cancelling a handle that already ran or
    was already cancelled is a no-op.
    """

    __slots__ = ('time', 'uid', '_callback', '_args', '_cancelled', '_expired')

    def __init__(self, time: float, uid: int, callback: Callable, args: tuple):
        self.time = time
        self.uid = uid
        self._callback = callback
        self._args = args
        self._cancelled = False
        self._expired = False

    def cancel(self):
        """Cancel the event if it is still pending."""
        self._cancelled = True

    def is_cancelled(self) -> bool:
        return self._cancelled

    def is_expired(self) -> bool:
        """True once the event ran or was cancelled."""
        return self._expired or self._cancelled

    def is_pending(self) -> bool:
        return not self.is_expired()

    def _invoke(self):
        self._expired = True
        self._callback(*self._args)

    def __lt__(self, other: 'EventId') -> bool:
        return (self.time, self.uid) < (other.time, other.uid)

    def __repr__(self) -> str:
        state = 'cancelled' if self._cancelled else ('expired' if self._expired else 'pending')
        return f"EventId(time={self.time}, uid={self.uid}, {state})"


class Simulator:
    """
    Single-threaded discrete-event scheduler.

    All callbacks run synchronously on the caller's thread inside run().
    Time only advances when the next event is popped from the queue.

    Parameters:
        start_time: Initial logical time in seconds (default: 0.0)
        verbose: Enable debug logging of every dispatched event (default: False)
    """

    def __init__(self, start_time: float = 0.0, verbose: bool = False):
        self._now = float(start_time)
        self._queue: List[EventId] = []
        self._uids = itertools.count()
        self._stop_time: Optional[float] = None
        self._running = False
        self._finished = False
        self._dispatched = 0

        self._logger = logging.getLogger(__name__)
        if verbose:
            self._logger.setLevel(logging.DEBUG)

    @property
    def now(self) -> float:
        """Current logical time in seconds."""
        return self._now

    @property
    def is_finished(self) -> bool:
        """True once run() returned because the queue drained or the stop time was reached."""
        return self._finished

    def schedule(self, delay_sec: float, callback: Callable, *args: Any) -> EventId:
        """
        Schedule a callback after a relative delay.

        Args:
            delay_sec: Delay from now in seconds (must be >= 0)
            callback: Callable invoked as callback(*args)
            *args: Positional arguments for the callback

        Returns:
            EventId handle that can be cancelled
        """
        if delay_sec < 0:
            raise ValueError(f"Cannot schedule an event in the past (delay {delay_sec}s)")

        event = EventId(self._now + delay_sec, next(self._uids), callback, args)
        heapq.heappush(self._queue, event)
        return event

    def schedule_now(self, callback: Callable, *args: Any) -> EventId:
        """Schedule a callback at the current time, after already queued events for now."""
        return self.schedule(0.0, callback, *args)

    def cancel(self, event: Optional[EventId]):
        """Cancel a pending event (None is accepted and ignored)."""
        if event is not None:
            event.cancel()

    def stop(self, delay_sec: Optional[float] = None):
        """
        Stop the simulation.

        Args:
            delay_sec: Stop after this delay from now. If None, stop as soon as
                       the current event returns.
        """
        if delay_sec is not None and delay_sec < 0:
            raise ValueError(f"Stop delay must be >= 0, got {delay_sec}s")
        self._stop_time = self._now + (delay_sec or 0.0)

    def pending_events(self) -> int:
        """Number of events that are still pending."""
        return sum(1 for event in self._queue if event.is_pending())

    def run(self, until: Optional[float] = None):
        """
        Process events in time order.

        Args:
            until: Absolute stop time in seconds (overrides a previous stop())
        """
        if until is not None:
            if until < self._now:
                raise ValueError(f"Stop time {until}s is before current time {self._now}s")
            self._stop_time = until

        self._running = True
        self._finished = False
        try:
            while self._queue:
                event = self._queue[0]
                if event.is_cancelled():
                    heapq.heappop(self._queue)
                    continue
                if self._stop_time is not None and event.time > self._stop_time:
                    break

                heapq.heappop(self._queue)
                self._now = event.time
                self._dispatched += 1
                self._logger.debug(f"t={self._now:.3f}s dispatching event #{event.uid}")
                event._invoke()

                if self._stop_time is not None and self._stop_time <= self._now and not self._has_events_at(self._now):
                    break
        finally:
            self._running = False

        if self._stop_time is not None and self._stop_time > self._now:
            self._now = self._stop_time
        self._finished = True
        self._logger.debug(f"Simulation finished at t={self._now:.3f}s after {self._dispatched} events")

    def _has_events_at(self, time: float) -> bool:
        return any(event.time <= time and event.is_pending() for event in self._queue)
