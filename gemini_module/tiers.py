"""Model tiers: a closed set of named model bundles validated once at the boundary"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Tier(StrEnum):
    FIRST = "first"
    BUSINESS = "business"
    ECONOMY = "economy"
    BUDGET = "budget"
    EXPERIMENTAL = "experimental"


class TierModels(BaseModel):
    """Models used by each stage for one tier."""

    model_config = ConfigDict(frozen=True)

    label: str
    description: str = Field(..., description="Model for screenshot/audio description and merge")
    transcription: str = Field(..., description="Model for chunk transcription")
    report: str = Field(..., description="Model for report outline and sections")

    @field_validator("description", "transcription", "report")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("model name cannot be empty")
        return v


_PRO = "gemini-2.0-pro-exp-02-05"
_FLASH = "gemini-2.0-flash"
_FLASH_LITE = "gemini-2.0-flash-lite-preview-02-05"
_PRO_25 = "gemini-2.5-pro-preview-03-25"

TIER_MODELS: dict[Tier, TierModels] = {
    Tier.FIRST: TierModels(
        label="First Tier (Pro models)",
        description=_PRO,
        transcription=_PRO,
        report=_PRO,
    ),
    Tier.BUSINESS: TierModels(
        label="Business Tier (Pro for description, Flash for transcription)",
        description=_PRO,
        transcription=_FLASH,
        report=_PRO,
    ),
    Tier.ECONOMY: TierModels(
        label="Economy Tier (Flash models)",
        description=_FLASH,
        transcription=_FLASH,
        report=_FLASH,
    ),
    Tier.BUDGET: TierModels(
        label="Budget Tier (Flash for description, Flash Lite for transcription)",
        description=_FLASH,
        transcription=_FLASH_LITE,
        report=_FLASH_LITE,
    ),
    Tier.EXPERIMENTAL: TierModels(
        label="Experimental Tier (Gemini 2.5 Pro Preview)",
        description=_PRO_25,
        transcription=_PRO_25,
        report=_PRO_25,
    ),
}


def get_tier_models(tier: Tier | str) -> TierModels:
    """Resolve a tier (or its string value) to its models. Raises ValueError for unknown tiers."""
    try:
        return TIER_MODELS[Tier(str(tier).strip().lower())]
    except ValueError:
        valid = ", ".join(t.value for t in Tier)
        raise ValueError(f"Invalid tier '{tier}'. Must be one of: {valid}") from None
