"""Error types and user-friendly error translation."""

from .exceptions import AttemptSyncError, FollowUpValidationError, TaskServerError
from .translator import ErrorTranslator, UserFriendlyError

__all__ = [
    "AttemptSyncError",
    "FollowUpValidationError",
    "TaskServerError",
    "ErrorTranslator",
    "UserFriendlyError",
]
