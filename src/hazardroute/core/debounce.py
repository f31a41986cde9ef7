"""
Trailing-edge debouncing for push-based inputs.

Used to collapse bursts of live positioning updates so the deviation check only runs on the
latest sample once the stream has been quiet for `window_seconds`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class Debouncer(Generic[T]):
    """Hold the most recent value until `window_seconds` pass without a newer one.

    The debouncer never sleeps or schedules anything itself: callers either submit values with
    their own timestamps, or call `poll()` from a timer. Timestamps are monotonic seconds.
    """

    window_seconds: float
    _pending: T | None = field(default=None, init=False, repr=False)
    _deadline: float | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if float(self.window_seconds) < 0:
            raise ValueError("window_seconds must be >= 0")
        self.window_seconds = float(self.window_seconds)

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def submit(self, value: T, at: float | None = None) -> T | None:
        """Queue `value` as the latest input.

        Returns the previously pending value if its window had already elapsed by `at`
        (the timer would have fired before this input arrived); otherwise the previous value is
        superseded and dropped.
        """
        now = time.monotonic() if at is None else float(at)
        released = self.poll(now)
        self._pending = value
        self._deadline = now + self.window_seconds
        return released

    def poll(self, now: float | None = None) -> T | None:
        """Release the pending value if its window has elapsed."""
        if self._deadline is None:
            return None
        now = time.monotonic() if now is None else float(now)
        if now < self._deadline:
            return None
        value = self._pending
        self._pending = None
        self._deadline = None
        return value

    def cancel(self) -> None:
        """Drop any pending value (safe to call repeatedly)."""
        self._pending = None
        self._deadline = None
