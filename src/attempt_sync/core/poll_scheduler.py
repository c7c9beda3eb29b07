"""Fixed-interval polling of the selected attempt."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0

PollTick = Callable[[str], Awaitable[Any]]


class PollScheduler:
    """Keeps at most one poll timer alive, bound to one attempt.

    The timer only schedules work: each tick runs as its own task, so
    cancelling the timer (attempt switch, attempt stopped running) never
    cancels a fetch that is already on the wire.
    """

    def __init__(self, tick: PollTick, interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS):
        self._tick = tick
        self.interval_seconds = interval_seconds
        self._timer: Optional[asyncio.Task] = None
        self._timer_attempt_id: Optional[str] = None
        self._ticks: Set[asyncio.Task] = set()

    @property
    def is_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def armed_attempt_id(self) -> Optional[str]:
        return self._timer_attempt_id if self.is_armed else None

    def sync(self, attempt_id: Optional[str], is_running: bool) -> None:
        """Arm, keep or disarm the timer for the current state.

        Idempotent: an armed timer for the same attempt is left untouched,
        so repeated calls while an attempt keeps running don't reset the
        tick cadence.
        """
        should_poll = attempt_id is not None and is_running
        if should_poll and self.armed_attempt_id == attempt_id:
            return

        self.cancel()
        if should_poll:
            self._timer_attempt_id = attempt_id
            self._timer = asyncio.create_task(self._run(attempt_id), name=f"poll-{attempt_id}")
            logger.debug(f"Polling armed for {attempt_id} every {self.interval_seconds}s")

    def cancel(self) -> None:
        """Disarm the timer. In-flight ticks are left to finish."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            logger.debug(f"Polling disarmed for {self._timer_attempt_id}")
        self._timer = None
        self._timer_attempt_id = None

    async def stop(self, cancel_in_flight: bool = True) -> None:
        """Tear down: disarm and wait for the timer (and optionally ticks) to end."""
        timer = self._timer
        self.cancel()
        pending = [timer] if timer is not None else []
        if cancel_in_flight:
            for task in self._ticks:
                task.cancel()
            pending.extend(self._ticks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self, attempt_id: str) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            task = asyncio.create_task(self._safe_tick(attempt_id))
            self._ticks.add(task)
            task.add_done_callback(self._ticks.discard)

    async def _safe_tick(self, attempt_id: str) -> None:
        try:
            await self._tick(attempt_id)
        except Exception as e:
            # Keep polling; the next tick retries at the same interval
            logger.error(f"Poll tick failed for {attempt_id}: {e}", exc_info=True)
