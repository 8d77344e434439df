"""Logical timestamps for transactions and execution receipts."""

from __future__ import annotations

import threading


class LogicalClock:
    """Thread-safe monotonic counter. ``tick()`` never returns the same value twice."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock start must be non-negative")
        self._value = start
        self._lock = threading.Lock()

    def tick(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def observe(self, timestamp: int) -> None:
        """Advance past *timestamp* (used when restoring persisted state)."""
        with self._lock:
            if timestamp > self._value:
                self._value = timestamp

    @property
    def now(self) -> int:
        return self._value


# Shared default for transactions proposed without an explicit clock
GLOBAL_CLOCK = LogicalClock()
