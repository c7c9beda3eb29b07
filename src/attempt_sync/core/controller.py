"""Attempt controller: single owner of the selected attempt's sync state."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from ..errors import TaskServerError
from ..integrations.task_server.base import ProcessFetcher
from ..utils.error_handling import ErrorContext
from ..utils.rich_logging import AttemptContextLogger
from .attempt_state import is_attempt_running, resolve_default_follow_up_variant
from .config import SyncConfig
from .follow_up import FollowUpSubmitter
from .models import AttemptData, AttemptSnapshot, TaskAttempt
from .poll_scheduler import DEFAULT_POLL_INTERVAL_SECONDS, PollScheduler
from .profiles import ProfileCatalog
from .reconciler import AttemptDataListener, AttemptDataReconciler

logger = logging.getLogger(__name__)


async def build_profile_catalog(
    fetcher: ProcessFetcher,
    local: Optional[ProfileCatalog] = None,
) -> Optional[ProfileCatalog]:
    """Remote catalog with local profiles layered over it by label.

    An unreachable server leaves only the local catalog (possibly None).
    """
    try:
        remote = await fetcher.get_profiles()
    except TaskServerError as e:
        logger.warning(f"Could not load profiles from task server: {e}")
        return local

    if local is None:
        return remote
    return remote.merge(local)


@dataclass
class AttemptState:
    """Selection state owned by the controller."""
    selected_attempt: Optional[TaskAttempt] = None
    is_stopping: bool = False


class AttemptController:
    """Wires reconciliation, polling and follow-ups for one selected attempt.

    Readers (UI layers, the follow-up submitter) get a reference to the
    controller and read its properties; only the reconciler writes
    AttemptData, and only the controller changes the selection.
    """

    def __init__(
        self,
        fetcher: ProcessFetcher,
        *,
        catalog: Optional[ProfileCatalog] = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        default_profile: Optional[str] = None,
        context_logger: Optional[AttemptContextLogger] = None,
    ):
        self.fetcher = fetcher
        self.catalog = catalog
        self.state = AttemptState()
        self.logger = context_logger or AttemptContextLogger(logger)
        self.reconciler = AttemptDataReconciler(fetcher)
        self.scheduler = PollScheduler(self._poll_tick, interval_seconds=poll_interval_seconds)
        self.follow_up = FollowUpSubmitter(self, default_profile=default_profile)
        self._background: Set[asyncio.Task] = set()
        self._closed = False

        # Registered first so polling is resynced before any UI listener runs
        self.reconciler.subscribe(self._on_attempt_data)

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        fetcher: ProcessFetcher,
        catalog: Optional[ProfileCatalog] = None,
    ) -> "AttemptController":
        return cls(
            fetcher,
            catalog=catalog,
            poll_interval_seconds=config.polling.interval_seconds,
            default_profile=config.follow_up.default_profile,
        )

    # ---- read side ----

    @property
    def selected_attempt(self) -> Optional[TaskAttempt]:
        return self.state.selected_attempt

    @property
    def is_stopping(self) -> bool:
        return self.state.is_stopping

    @property
    def attempt_data(self) -> AttemptData:
        return self.reconciler.data

    @property
    def is_attempt_running(self) -> bool:
        if self.state.selected_attempt is None:
            return False
        return is_attempt_running(self.attempt_data.processes, self.state.is_stopping)

    @property
    def default_follow_up_variant(self) -> Optional[str]:
        attempt = self.state.selected_attempt
        data = self.attempt_data
        return resolve_default_follow_up_variant(
            data.processes,
            data.process_profiles,
            attempt.profile if attempt else None,
            self.catalog,
        )

    def snapshot(self) -> AttemptSnapshot:
        return AttemptSnapshot(
            attempt=self.state.selected_attempt,
            attempt_data=self.attempt_data,
            is_attempt_running=self.is_attempt_running,
            is_stopping=self.state.is_stopping,
            default_follow_up_variant=self.default_follow_up_variant,
            follow_up=self.follow_up.state(),
        )

    def subscribe(self, listener: AttemptDataListener) -> Callable[[], None]:
        """Call ``listener`` with every newly published AttemptData."""
        return self.reconciler.subscribe(listener)

    # ---- write side ----

    async def select_attempt(self, attempt: Optional[TaskAttempt]) -> AttemptData:
        """Switch the selected attempt and run its first reconciliation."""
        self.scheduler.cancel()
        self.state.selected_attempt = attempt
        self.state.is_stopping = False
        self.follow_up.reset()
        self.logger.attempt_selected(attempt.id if attempt else None)
        self.reconciler.reset(attempt.id if attempt else None)

        if attempt is None:
            return self.attempt_data
        return await self.fetch_attempt_data(attempt.id)

    async def fetch_attempt_data(self, attempt_id: str) -> AttemptData:
        """Reconcile now, superseding any cycle already in flight."""
        return await self.reconciler.fetch(attempt_id)

    def refresh_in_background(self, attempt_id: str) -> asyncio.Task:
        """Spawn one out-of-band reconciliation, independent of the poll timer."""
        task = asyncio.create_task(self.fetch_attempt_data(attempt_id))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def set_stopping(self, stopping: bool) -> None:
        """Flag a pending stop; a stopping attempt is never considered running."""
        self.state.is_stopping = stopping
        self._sync_polling()

    async def open_in_editor(self, editor_type: Optional[str] = None) -> bool:
        """Forward an open-editor request for the selected attempt.

        Returns False when nothing is selected or the server refused, so the
        caller can fall back to asking the user for an editor.
        """
        attempt = self.state.selected_attempt
        if attempt is None:
            return False

        opened = False
        with ErrorContext(
            f"opening editor for {attempt.id}",
            raise_on_error=False,
            suppress=(TaskServerError,),
            default_value=False,
            logger_instance=logger,
            log_level=logging.WARNING,
        ) as ctx:
            opened = await self.fetcher.open_editor(attempt.id, editor_type)
        return ctx.get_result(opened)

    async def wait_for_pending(self) -> None:
        """Wait until all out-of-band reconciliations have finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        """Stop polling and cancel outstanding work."""
        self._closed = True
        await self.scheduler.stop()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ---- internals ----

    async def _poll_tick(self, attempt_id: str) -> None:
        await self.reconciler.fetch(attempt_id, coalesce=True)

    def _on_attempt_data(self, data: AttemptData) -> None:
        if data.processes:
            running = sum(1 for p in data.processes if p.is_running)
            self.logger.processes_synced(len(data.processes), running)
        self._sync_polling()

    def _sync_polling(self) -> None:
        if self._closed:
            return
        attempt = self.state.selected_attempt
        self.scheduler.sync(attempt.id if attempt else None, self.is_attempt_running)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background reconciliation failed: {error}", exc_info=error)
