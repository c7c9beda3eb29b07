"""Records synchronized from the task server."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .executor_action import ExecutorAction
from .profiles import ProfileVariant


class RunReason(str, Enum):
    """Role of a process within an attempt."""
    SETUP_SCRIPT = "setupscript"
    CLEANUP_SCRIPT = "cleanupscript"
    CODING_AGENT = "codingagent"
    DEV_SERVER = "devserver"


class ProcessStatus(str, Enum):
    """Execution status of a process."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"


# Both sets are open: values this package does not know are kept as plain
# strings so one new tag does not fail the whole process list
RunReasonValue = Annotated[Union[RunReason, str], Field(union_mode="left_to_right")]
ProcessStatusValue = Annotated[Union[ProcessStatus, str], Field(union_mode="left_to_right")]


class ExecutionProcess(BaseModel):
    """One step of an attempt (setup script, agent run, cleanup script).

    The list endpoint returns lightweight summaries; the detail endpoint
    returns the same shape with ``executor_action`` always populated.
    """
    id: str
    task_attempt_id: Optional[str] = None
    run_reason: RunReasonValue
    status: ProcessStatusValue
    executor_action: Optional[ExecutorAction] = None
    exit_code: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.status == ProcessStatus.RUNNING


class TaskAttempt(BaseModel):
    """A single execution run of a task."""
    id: str
    task_id: Optional[str] = None
    # Profile label the attempt was started with
    profile: Optional[str] = None
    branch: Optional[str] = None
    created_at: Optional[datetime] = None


class AttemptData(BaseModel):
    """Synchronized view of an attempt's processes.

    Immutable: the reconciler publishes a new instance only when the value
    differs from the current one. Equality is structural over the fields.
    """
    model_config = ConfigDict(frozen=True)

    # Ascending by creation; order is significant
    processes: Tuple[ExecutionProcess, ...] = ()
    running_process_details: Dict[str, ExecutionProcess] = Field(default_factory=dict)
    process_profiles: Dict[str, Optional[ProfileVariant]] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "AttemptData":
        return cls()

    def profile_for(self, process_id: str) -> Optional[ProfileVariant]:
        return self.process_profiles.get(process_id)


class FollowUpRequest(BaseModel):
    """Body of a follow-up submission."""
    prompt: str
    variant: Optional[str] = None


class FollowUpState(BaseModel):
    """Follow-up input state as seen by a UI."""
    message: str = ""
    is_sending: bool = False
    can_send: bool = False
    error: Optional[str] = None
    selected_profile: Optional[str] = None
    selected_variant: Optional[str] = None


class AttemptSnapshot(BaseModel):
    """Everything a UI needs to render the selected attempt."""
    attempt: Optional[TaskAttempt] = None
    attempt_data: AttemptData = Field(default_factory=AttemptData.empty)
    is_attempt_running: bool = False
    is_stopping: bool = False
    default_follow_up_variant: Optional[str] = None
    follow_up: FollowUpState = Field(default_factory=FollowUpState)
