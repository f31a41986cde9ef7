"""
Asyncio drivers for the time-based parts of a session.

- `SimulationRunner` ticks the simulator from a background task.
- `schedule_live_flush` arms the trailing edge of the live-sample debounce.

Both call into the session from the event loop thread only, so the session never sees two
mutations at once.
"""

from __future__ import annotations

import asyncio
import logging

from hazardroute.planner.session import PlanningSession
from hazardroute.tracking.simulator import SimulatedMotion

logger = logging.getLogger(__name__)

# asyncio may run timer callbacks up to one clock tick early.
_FLUSH_SLACK_SECONDS = 0.01


class SimulationRunner:
    def __init__(self, session: PlanningSession):
        self._session = session
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, speed_kmh: float | None = None) -> SimulatedMotion:
        """(Re)start the simulation on the session's active route."""
        self.stop()
        motion = self._session.start_simulation(speed_kmh)
        self._task = asyncio.get_running_loop().create_task(self._run(motion))
        return motion

    async def _run(self, motion: SimulatedMotion) -> None:
        while self._session.simulation is motion and not motion.done:
            await asyncio.sleep(motion.tick_seconds)
            if self._session.simulation is not motion:
                break
            self._session.simulation_step()
        logger.info("Simulation task finished after %d/%d ticks", motion.ticks, motion.total_ticks)

    def stop(self) -> None:
        """Cancel the ticking task and reset deviation state (safe to call repeatedly)."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self._session.stop_simulation()


def schedule_live_flush(session: PlanningSession) -> asyncio.TimerHandle | None:
    """Arm a timer that evaluates the pending live sample once its debounce window passes."""
    deadline = session.feed.pending_deadline
    if deadline is None:
        return None
    loop = asyncio.get_running_loop()
    delay = max(0.0, deadline - session.now()) + _FLUSH_SLACK_SECONDS
    return loop.call_later(delay, session.flush_live)
