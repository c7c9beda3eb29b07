"""Agent profiles, variants and the profile catalog."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProfileVariant(BaseModel):
    """A named agent profile plus optional named sub-variant."""
    model_config = ConfigDict(frozen=True)

    profile: str
    variant: Optional[str] = None

    @classmethod
    def default(cls, profile: str) -> "ProfileVariant":
        return cls(profile=profile)

    @classmethod
    def with_variant(cls, profile: str, variant: str) -> "ProfileVariant":
        return cls(profile=profile, variant=variant)

    @property
    def label(self) -> str:
        """Short display form, e.g. ``claude-code/plan``."""
        if self.variant:
            return f"{self.profile}/{self.variant}"
        return self.profile


class VariantProfile(BaseModel):
    """One selectable variant of an agent profile."""
    label: str
    mcp_config_path: Optional[str] = None


class AgentProfile(BaseModel):
    """Catalog entry for an agent profile."""
    label: str
    mcp_config_path: Optional[str] = None
    # Supported variants for this profile, may be empty
    variants: List[VariantProfile] = Field(default_factory=list)

    def get_variant(self, label: str) -> Optional[VariantProfile]:
        return next((v for v in self.variants if v.label == label), None)


class ProfileCatalog(BaseModel):
    """Ordered collection of agent profiles known to the task server."""
    profiles: List[AgentProfile] = Field(default_factory=list)

    def get_profile(self, label: str) -> Optional[AgentProfile]:
        return next((p for p in self.profiles if p.label == label), None)

    def to_map(self) -> Dict[str, AgentProfile]:
        return {p.label: p for p in self.profiles}

    def merge(self, overrides: "ProfileCatalog") -> "ProfileCatalog":
        """Overlay user profiles on top of this catalog.

        A profile in ``overrides`` replaces the entry with the same label;
        profiles with new labels are appended in their original order.
        """
        merged = list(self.profiles)
        positions = {p.label: i for i, p in enumerate(merged)}
        for profile in overrides.profiles:
            if profile.label in positions:
                merged[positions[profile.label]] = profile
            else:
                positions[profile.label] = len(merged)
                merged.append(profile)
        return ProfileCatalog(profiles=merged)
