"""Pydantic models for the attempt-sync HTTP API."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..core.models import AttemptData, FollowUpState


class SelectAttemptRequest(BaseModel):
    """Select an attempt, or clear the selection with a null id."""
    attempt_id: Optional[str] = None
    # Declared profile; looked up from the task server when omitted
    profile: Optional[str] = None

    @field_validator('attempt_id')
    @classmethod
    def validate_attempt_id(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("attempt_id must not be blank")
        return v


class StoppingRequest(BaseModel):
    stopping: bool


class FollowUpSubmitRequest(BaseModel):
    """Follow-up prompt; ``variant`` falls back to the attempt's default."""
    message: str = Field(..., min_length=1)
    variant: Optional[str] = None
    profile: Optional[str] = None


class OpenEditorRequest(BaseModel):
    editor_type: Optional[str] = None


class SuccessResponse(BaseModel):
    """Generic success response."""
    success: bool = True
    message: str


class AttemptDataResponse(BaseModel):
    """Attempt data after an explicit refresh."""
    attempt_id: str
    attempt_data: AttemptData
    is_attempt_running: bool


class FollowUpResponse(BaseModel):
    """Outcome of a follow-up submission.

    ``success`` is False both for validation failures and for server
    refusals; ``follow_up.error`` carries the inline error text.
    """
    success: bool
    follow_up: FollowUpState


class OpenEditorResponse(BaseModel):
    opened: bool
