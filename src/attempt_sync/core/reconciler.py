"""Attempt data reconciliation.

One reconciliation cycle lists an attempt's processes, enriches the running
processes and the setup process with their full detail, records the agent
profile of every process and publishes the result if it differs from what
is already held.

Every cycle is stamped with a generation number. Selecting an attempt and
issuing a new cycle both bump the generation, and a cycle's result is only
applied while its generation is still the current one. A slow response for
an attempt that is no longer selected, or one overtaken by a newer cycle,
is therefore dropped instead of overwriting fresher state.
"""

import logging
from typing import Callable, Dict, List, Optional, Set

from ..errors import TaskServerError
from ..integrations.task_server.base import ProcessFetcher
from ..utils.error_handling import log_and_ignore
from .executor_action import extract_profile_variant
from .models import AttemptData, ExecutionProcess, ProcessStatus, RunReason
from .profiles import ProfileVariant

logger = logging.getLogger(__name__)

AttemptDataListener = Callable[[AttemptData], None]


class AttemptDataReconciler:
    """Owns the current AttemptData and is its only writer."""

    def __init__(self, fetcher: ProcessFetcher):
        self.fetcher = fetcher
        self._attempt_id: Optional[str] = None
        self._data = AttemptData.empty()
        self._generation = 0
        self._in_flight: Set[int] = set()
        self._listeners: List[AttemptDataListener] = []

    @property
    def data(self) -> AttemptData:
        return self._data

    @property
    def attempt_id(self) -> Optional[str]:
        return self._attempt_id

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_fetching(self) -> bool:
        return bool(self._in_flight)

    def subscribe(self, listener: AttemptDataListener) -> Callable[[], None]:
        """Register a listener for published data. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self, attempt_id: Optional[str]) -> None:
        """Switch to another attempt (or none), discarding the held data.

        Cycles still in flight for the previous attempt keep running but
        their results will be dropped.
        """
        self._attempt_id = attempt_id
        self._generation += 1
        self._in_flight.clear()
        self._publish(AttemptData.empty())

    async def fetch(self, attempt_id: str, *, coalesce: bool = False) -> AttemptData:
        """Run one reconciliation cycle and return the data current afterwards.

        Args:
            attempt_id: Attempt to reconcile; must be the selected attempt.
            coalesce: Skip the cycle when another one is already in flight.
                Timer ticks use this; explicit refreshes do not, so they
                supersede whatever is in flight.
        """
        if attempt_id != self._attempt_id:
            logger.debug(f"Ignoring fetch for unselected attempt {attempt_id}")
            return self._data
        if coalesce and self._in_flight:
            logger.debug(f"Reconciliation already in flight for {attempt_id}, skipping")
            return self._data

        self._generation += 1
        generation = self._generation
        self._in_flight.add(generation)
        try:
            candidate = await self._assemble(attempt_id)
        except TaskServerError as e:
            if self._is_current(attempt_id, generation):
                log_and_ignore(e, f"Failed to fetch attempt data for {attempt_id}", logger_instance=logger)
            return self._data
        finally:
            self._in_flight.discard(generation)

        if not self._is_current(attempt_id, generation):
            logger.debug(
                f"Discarding stale reconciliation for {attempt_id} "
                f"(generation {generation}, current {self._generation})"
            )
            return self._data

        return self._publish(candidate)

    def _is_current(self, attempt_id: str, generation: int) -> bool:
        return attempt_id == self._attempt_id and generation == self._generation

    async def _assemble(self, attempt_id: str) -> AttemptData:
        processes = await self.fetcher.list_processes(attempt_id)

        details: Dict[str, ExecutionProcess] = {}
        profiles: Dict[str, Optional[ProfileVariant]] = {}

        for process in processes:
            if process.status == ProcessStatus.RUNNING:
                await self._enrich(process.id, details, profiles)

        # Setup output stays inspectable after the script finishes
        setup = next((p for p in processes if p.run_reason == RunReason.SETUP_SCRIPT), None)
        if setup is not None and setup.id not in details:
            await self._enrich(setup.id, details, profiles)

        # Remaining processes: the summary's action is enough, no extra call
        for process in processes:
            if process.id not in profiles:
                profiles[process.id] = extract_profile_variant(process.executor_action)

        return AttemptData(
            processes=tuple(processes),
            running_process_details=details,
            process_profiles=profiles,
        )

    async def _enrich(
        self,
        process_id: str,
        details: Dict[str, ExecutionProcess],
        profiles: Dict[str, Optional[ProfileVariant]],
    ) -> None:
        detail = await self.fetcher.get_process_details(process_id)
        details[process_id] = detail
        profiles[process_id] = extract_profile_variant(detail.executor_action)

    def _publish(self, candidate: AttemptData) -> AttemptData:
        # Structural equality keeps the old reference so listeners only fire on change
        if candidate == self._data:
            return self._data
        self._data = candidate
        for listener in list(self._listeners):
            listener(candidate)
        return candidate
