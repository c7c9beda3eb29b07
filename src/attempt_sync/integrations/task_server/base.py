"""Base interface for task-server process access."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ...core.models import ExecutionProcess, FollowUpRequest, TaskAttempt
from ...core.profiles import ProfileCatalog


class ProcessFetcher(ABC):
    """Remote operations the synchronization core depends on.

    Implementations raise ``TaskServerError`` for every transport or
    server-side failure so callers only need one except clause.
    """

    @abstractmethod
    async def list_processes(self, attempt_id: str) -> List[ExecutionProcess]:
        """List an attempt's processes, ascending by start time."""

    @abstractmethod
    async def get_process_details(self, process_id: str) -> ExecutionProcess:
        """Fetch one process with its full executor action."""

    @abstractmethod
    async def submit_follow_up(self, attempt_id: str, request: FollowUpRequest) -> None:
        """Start a follow-up execution on the attempt."""

    async def open_editor(self, attempt_id: str, editor_type: Optional[str] = None) -> bool:
        """Ask the server to open the attempt's worktree in an editor.

        Returns False when the server has no editor configured. Default
        implementation for fetchers without editor support.
        """
        return False

    async def get_attempt(self, attempt_id: str) -> TaskAttempt:
        """Look up attempt metadata. Default builds a bare attempt."""
        return TaskAttempt(id=attempt_id)

    async def get_profiles(self) -> ProfileCatalog:
        """Fetch the server's profile catalog. Default is empty."""
        return ProfileCatalog()

    async def aclose(self) -> None:
        """Release network resources."""
