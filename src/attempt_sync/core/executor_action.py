"""Executor action sum type and profile extraction.

An executor action describes what an execution process was asked to run.
The wire format is internally tagged on ``typ.type``::

    {"typ": {"type": "CodingAgentInitialRequest",
             "prompt": "...",
             "profile": {"profile": "claude-code", "variant": "plan"}},
     "next_action": null}

Tags this package does not know about are parsed into ``UnknownAction``
instead of failing validation, so newer servers can add action kinds
without breaking synchronization.
"""

from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Tag, ValidationError

from .profiles import ProfileVariant

UNKNOWN_ACTION_TAG = "unknown"


class CodingAgentInitialRequest(BaseModel):
    """First prompt sent to a coding agent in an attempt."""
    type: Literal["CodingAgentInitialRequest"] = "CodingAgentInitialRequest"
    prompt: str
    profile: ProfileVariant


class CodingAgentFollowUpRequest(BaseModel):
    """Follow-up prompt continuing an existing agent session."""
    type: Literal["CodingAgentFollowUpRequest"] = "CodingAgentFollowUpRequest"
    prompt: str
    session_id: str
    profile: ProfileVariant


class ScriptRequest(BaseModel):
    """Setup, cleanup or dev-server script run."""
    type: Literal["ScriptRequest"] = "ScriptRequest"
    script: str
    language: str = "Bash"
    context: str = "SetupScript"


class UnknownAction(BaseModel):
    """Any action whose discriminant is missing or unrecognized."""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None


_KNOWN_ACTION_TAGS = frozenset({
    "CodingAgentInitialRequest",
    "CodingAgentFollowUpRequest",
    "ScriptRequest",
})


def _action_tag(value: Any) -> str:
    if isinstance(value, Mapping):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    return tag if tag in _KNOWN_ACTION_TAGS else UNKNOWN_ACTION_TAG


ExecutorActionType = Annotated[
    Union[
        Annotated[CodingAgentInitialRequest, Tag("CodingAgentInitialRequest")],
        Annotated[CodingAgentFollowUpRequest, Tag("CodingAgentFollowUpRequest")],
        Annotated[ScriptRequest, Tag("ScriptRequest")],
        Annotated[UnknownAction, Tag(UNKNOWN_ACTION_TAG)],
    ],
    Discriminator(_action_tag),
]

# Action kinds that carry an agent profile
INTERACTIVE_ACTION_TYPES = (CodingAgentInitialRequest, CodingAgentFollowUpRequest)


class ExecutorAction(BaseModel):
    """Tagged action plus an optional chained action to run afterwards."""
    typ: Optional[ExecutorActionType] = None
    next_action: Optional["ExecutorAction"] = None


ExecutorAction.model_rebuild()


def extract_profile_variant(
    action: Union[ExecutorAction, Mapping[str, Any], None],
) -> Optional[ProfileVariant]:
    """Return the agent profile embedded in an interactive request, else None.

    Never raises: malformed payloads are treated like actions without a
    recognizable discriminant.
    """
    if action is None:
        return None
    if not isinstance(action, ExecutorAction):
        try:
            action = ExecutorAction.model_validate(action)
        except ValidationError:
            return None

    typ = action.typ
    if isinstance(typ, INTERACTIVE_ACTION_TYPES):
        return typ.profile
    return None
