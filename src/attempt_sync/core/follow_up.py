"""Follow-up submission for the selected attempt."""

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from ..errors import FollowUpValidationError, TaskServerError
from .models import FollowUpRequest, FollowUpState

if TYPE_CHECKING:
    from .controller import AttemptController

logger = logging.getLogger(__name__)

SUBMISSION_ERROR_PREFIX = "Failed to start follow-up execution"

# Sentinel distinguishing "use the selected variant" from an explicit None
_UNSET = object()


class FollowUpSubmitter:
    """Gates and submits follow-up prompts, one at a time.

    Reads attempt state through the controller handle; never writes it.
    A successful submission asks the controller for one immediate
    out-of-band reconciliation so the new agent process shows up without
    waiting for the next poll tick.
    """

    def __init__(self, controller: "AttemptController", default_profile: Optional[str] = None):
        self._controller = controller
        self.default_profile = default_profile
        self.message = ""
        self.is_sending = False
        self.error: Optional[str] = None
        self.selected_profile: Optional[str] = None
        self._selected_variant: Optional[str] = None
        self._variant_chosen = False

    @property
    def selected_variant(self) -> Optional[str]:
        """Explicitly chosen variant, else the attempt's default."""
        if self._variant_chosen:
            return self._selected_variant
        return self._controller.default_follow_up_variant

    @property
    def can_send(self) -> bool:
        controller = self._controller
        return (
            controller.selected_attempt is not None
            and len(controller.attempt_data.processes) > 0
            and not controller.is_attempt_running
            and not self.is_sending
        )

    def set_message(self, message: str) -> None:
        self.message = message
        if self.error:
            self.error = None

    def select_profile(self, profile: Optional[str]) -> None:
        self.selected_profile = profile

    def select_variant(self, variant: Optional[str]) -> None:
        """Record an explicit variant choice; None means the profile default.

        When the catalog knows the resolved profile, only its listed
        variants can be chosen.
        """
        if variant is not None:
            catalog = self._controller.catalog
            profile_label = self.resolve_profile()
            profile = catalog.get_profile(profile_label) if catalog and profile_label else None
            if profile is not None and profile.get_variant(variant) is None:
                raise FollowUpValidationError(
                    f"Unknown variant '{variant}' for profile '{profile.label}'",
                    field="variant",
                )
        self._selected_variant = variant
        self._variant_chosen = True

    def reset(self) -> None:
        """Clear input and selections, e.g. when another attempt is selected."""
        self.message = ""
        self.error = None
        self.selected_profile = None
        self._selected_variant = None
        self._variant_chosen = False

    def resolve_profile(self) -> Optional[str]:
        if self.selected_profile:
            return self.selected_profile
        attempt = self._controller.selected_attempt
        if attempt is not None and attempt.profile:
            return attempt.profile
        return self.default_profile

    def state(self) -> FollowUpState:
        return FollowUpState(
            message=self.message,
            is_sending=self.is_sending,
            can_send=self.can_send,
            error=self.error,
            selected_profile=self.resolve_profile(),
            selected_variant=self.selected_variant,
        )

    def _validate(self, message: str) -> Tuple[str, str]:
        prompt = message.strip()
        if not prompt:
            raise FollowUpValidationError("Follow-up message is empty", field="message")
        profile = self.resolve_profile()
        if not profile:
            raise FollowUpValidationError("No profile selected for follow-up", field="profile")
        return prompt, profile

    async def submit(self, message: Optional[str] = None, variant=_UNSET) -> bool:
        """Submit a follow-up for the selected attempt.

        Args:
            message: Prompt text; defaults to the current input buffer.
            variant: Variant to request; defaults to ``selected_variant``.
                Pass None explicitly to request the profile's default.

        Returns:
            True when the server accepted the follow-up.
        """
        if not self.can_send:
            logger.debug("Follow-up not sendable in current state")
            return False
        if message is not None:
            self.message = message

        try:
            prompt, _profile = self._validate(self.message)
        except FollowUpValidationError as e:
            self.error = e.message
            return False

        attempt = self._controller.selected_attempt
        request = FollowUpRequest(
            prompt=prompt,
            variant=self.selected_variant if variant is _UNSET else variant,
        )

        self.is_sending = True
        self.error = None
        try:
            await self._controller.fetcher.submit_follow_up(attempt.id, request)
        except TaskServerError as e:
            self.error = f"{SUBMISSION_ERROR_PREFIX}: {e.message}"
            self._controller.logger.follow_up_failed(e.message)
            return False
        finally:
            self.is_sending = False

        self.message = ""
        self._controller.logger.follow_up_sent(request.variant)
        self._controller.refresh_in_background(attempt.id)
        return True
