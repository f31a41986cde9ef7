"""
Position feed: the one boundary every motion sample crosses before the deviation monitor.

Live fixes are debounced (bursts collapse to the latest fix); simulated steps are already paced
by the simulator's tick, so they are evaluated immediately.
"""

from __future__ import annotations

from hazardroute.core.debounce import Debouncer
from hazardroute.tracking.monitor import DeviationMonitor, DeviationState, PositionSample


class PositionFeed:
    def __init__(self, monitor: DeviationMonitor, *, debounce_seconds: float = 0.4):
        self.monitor = monitor
        self._debouncer: Debouncer[PositionSample] = Debouncer(debounce_seconds)

    @property
    def pending_deadline(self) -> float | None:
        return self._debouncer.deadline

    def push(self, sample: PositionSample) -> DeviationState:
        """Feed one sample; returns the monitor's current state."""
        if sample.source == "simulated":
            # A pending live fix is older than this sample.
            self.discard_pending()
            return self.monitor.evaluate(sample)

        released = self._debouncer.submit(sample, at=sample.timestamp)
        if released is not None:
            self.monitor.evaluate(released)
        # A zero-length window releases the new sample straight away.
        released = self._debouncer.poll(sample.timestamp)
        if released is not None:
            self.monitor.evaluate(released)
        return self.monitor.state

    def poll(self, now: float | None = None) -> DeviationState:
        """Evaluate the pending live sample if its debounce window has elapsed."""
        released = self._debouncer.poll(now)
        if released is not None:
            self.monitor.evaluate(released)
        return self.monitor.state

    def discard_pending(self) -> None:
        """Forget the live sample waiting for its debounce window, if any."""
        self._debouncer.cancel()

    def stop(self) -> DeviationState:
        """Drop any pending sample and return to `no_route` (idempotent)."""
        self.discard_pending()
        self.monitor.reset()
        return self.monitor.state
