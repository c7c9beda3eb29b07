"""Pure derivations over synchronized attempt data."""

from typing import Iterable, Mapping, Optional, Sequence

from .models import ExecutionProcess, ProcessStatus, RunReason
from .profiles import ProfileCatalog, ProfileVariant

# Run reasons that keep an attempt "busy"; dev servers do not
ACTIVE_RUN_REASONS = frozenset({
    RunReason.CODING_AGENT,
    RunReason.SETUP_SCRIPT,
    RunReason.CLEANUP_SCRIPT,
})


def is_attempt_running(processes: Iterable[ExecutionProcess], stopping: bool) -> bool:
    """True while a setup, agent or cleanup process is running and no stop is pending."""
    if stopping:
        return False
    return any(
        p.run_reason in ACTIVE_RUN_REASONS and p.status == ProcessStatus.RUNNING
        for p in processes
    )


def resolve_default_follow_up_variant(
    processes: Sequence[ExecutionProcess],
    process_profiles: Mapping[str, Optional[ProfileVariant]],
    attempt_profile: Optional[str],
    catalog: Optional[ProfileCatalog],
) -> Optional[str]:
    """Pick the variant to pre-select for the next follow-up.

    Agent processes take precedence: the most recent one that recorded a
    variant wins. The catalog is only consulted when the attempt has no
    agent process yet, in which case the declared profile's first variant
    is used.
    """
    agent_processes = [p for p in processes if p.run_reason == RunReason.CODING_AGENT]

    if agent_processes:
        for process in reversed(agent_processes):
            profile_variant = process_profiles.get(process.id)
            if profile_variant is not None and profile_variant.variant is not None:
                return profile_variant.variant
        return None

    if attempt_profile and catalog is not None:
        profile = catalog.get_profile(attempt_profile)
        if profile is not None and profile.variants:
            return profile.variants[0].label
    return None
