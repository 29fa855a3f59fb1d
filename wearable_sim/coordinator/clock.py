"""
Simulation Clocks
Injectable time sources for the periodic tick tasks
"""

import threading
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)


class MonotonicClock:
    """
    Thread-safe wall clock for real-time ticking

    Ensures both tick tasks use the same time reference with:
    - Thread-safe access (physics and algorithm tasks call simultaneously)
    - Monotonic readings (never goes backwards, no duplicates)
    - Interruptible waits (a stop event cuts a sleep short)
    """

    def __init__(self):
        """Initialize monotonic clock"""
        self._lock = threading.Lock()
        self._last: Optional[float] = None
        self._call_count = 0

        logger.info("Monotonic clock initialized")

    def now(self) -> float:
        """
        Get current time reading

        Returns:
            float: Seconds from an arbitrary origin, strictly increasing
        """
        with self._lock:
            current = time.monotonic()

            if self._last is not None and current <= self._last:
                # Clock hasn't advanced: nudge by one microsecond
                current = self._last + 1e-6

            self._last = current
            self._call_count += 1

            return current

    def wait(self, seconds: float, stop_event: threading.Event) -> bool:
        """
        Sleep until timeout or until stop_event is set.

        Returns:
            True if the stop event was set
        """
        return stop_event.wait(max(0.0, seconds))

    def reset(self):
        """Reset clock state (useful for testing)"""
        with self._lock:
            self._last = None
            self._call_count = 0

    def get_stats(self) -> dict:
        """
        Get clock statistics

        Returns:
            dict: Clock usage statistics
        """
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_reading': self._last,
            }

    def __repr__(self):
        return f"<MonotonicClock(calls={self._call_count})>"


class ManualClock:
    """
    Clock that only moves when advance() is called.

    wait() blocks until the clock has been advanced past the deadline (or
    the stop event is set), so tests decide exactly when ticks are due.
    """

    POLL_INTERVAL = 0.01

    def __init__(self, start: float = 0.0):
        self._cond = threading.Condition()
        self._now = float(start)
        self._call_count = 0

    def now(self) -> float:
        with self._cond:
            self._call_count += 1
            return self._now

    def advance(self, seconds: float) -> float:
        """
        Move time forward and wake any waiting task.

        Returns:
            The new reading
        """
        with self._cond:
            self._now += max(0.0, seconds)
            self._cond.notify_all()
            return self._now

    def wait(self, seconds: float, stop_event: threading.Event) -> bool:
        with self._cond:
            deadline = self._now + max(0.0, seconds)
            while self._now < deadline and not stop_event.is_set():
                self._cond.wait(self.POLL_INTERVAL)
        return stop_event.is_set()

    def reset(self):
        with self._cond:
            self._now = 0.0
            self._call_count = 0

    def get_stats(self) -> dict:
        with self._cond:
            return {
                'total_calls': self._call_count,
                'last_reading': self._now,
            }

    def __repr__(self):
        return f"<ManualClock(now={self._now:.3f})>"
