"""Exception hierarchy for attempt synchronization."""

from typing import Optional


class AttemptSyncError(Exception):
    """Base class for all attempt-sync errors."""


class TaskServerError(AttemptSyncError):
    """The task server could not be reached or rejected a request.

    Covers transport failures, non-2xx responses and ``success: false``
    envelopes alike. ``status_code`` is None when no response was received.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, endpoint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.endpoint = endpoint


class FollowUpValidationError(AttemptSyncError):
    """A follow-up request was rejected client-side before any network call."""

    def __init__(self, message: str, *, field: str):
        super().__init__(message)
        self.message = message
        self.field = field
