"""Core models, configuration and attempt synchronization."""

from .models import (
    AttemptData,
    AttemptSnapshot,
    ExecutionProcess,
    FollowUpRequest,
    FollowUpState,
    ProcessStatus,
    RunReason,
    TaskAttempt,
)
from .profiles import AgentProfile, ProfileCatalog, ProfileVariant, VariantProfile
from .executor_action import ExecutorAction, extract_profile_variant
from .attempt_state import is_attempt_running, resolve_default_follow_up_variant
from .config import SyncConfig, load_config, load_profile_catalog

__all__ = [
    "AttemptData",
    "AttemptSnapshot",
    "ExecutionProcess",
    "FollowUpRequest",
    "FollowUpState",
    "ProcessStatus",
    "RunReason",
    "TaskAttempt",
    "AgentProfile",
    "ProfileCatalog",
    "ProfileVariant",
    "VariantProfile",
    "ExecutorAction",
    "extract_profile_variant",
    "is_attempt_running",
    "resolve_default_follow_up_variant",
    "SyncConfig",
    "load_config",
    "load_profile_catalog",
]
