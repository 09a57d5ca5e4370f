"""
Pydantic configuration models for revsched.

These models provide type-safe configuration with validation for:
- Application settings (logging, normalization, reconciliation, matching)
- Merchant guidance (field hints, default overrides, excluded fields)
- Integration mapping pairs
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class BillingType(str, Enum):
    """Canonical billing types."""

    FLAT_PRICE = "Flat price"
    UNIT_PRICE = "Unit price"
    TIER_FLAT_PRICE = "Tier flat price"
    TIER_UNIT_PRICE = "Tier unit price"

    @property
    def is_tier(self) -> bool:
        return self.value.startswith("Tier")

    @property
    def is_unit(self) -> bool:
        return self in (BillingType.UNIT_PRICE, BillingType.TIER_UNIT_PRICE)


class FrequencyUnit(str, Enum):
    """Canonical billing frequency units."""

    NONE = "None"
    DAYS = "Day(s)"
    WEEKS = "Week(s)"
    SEMI_MONTHS = "Semi_month(s)"
    MONTHS = "Month(s)"
    YEARS = "Year(s)"


class BillingTiming(str, Enum):
    """When in a billing period the invoice is raised."""

    FIRST = "first"
    LAST = "last"
    NEXT_PERIOD = "next_period"


class GarageBillingType(str, Enum):
    """Billing type vocabulary of the downstream billing system."""

    FLAT_PRICE = "FLAT_PRICE"
    UNIT_PRICE = "UNIT_PRICE"
    TIER_FLAT_PRICE = "TIER_FLAT_PRICE"
    TIER_UNIT_PRICE = "TIER_UNIT_PRICE"


class GarageFrequencyUnit(str, Enum):
    """Frequency vocabulary of the downstream billing system."""

    NONE = "NONE"
    DAYS = "DAYS"
    SEMI_MONTH = "SEMI_MONTH"
    MONTH = "MONTH"
    QUARTER = "QUARTER"
    YEAR = "YEAR"


class MatchConfidence(str, Enum):
    """Confidence tier of an integration item match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


# =============================================================================
# Engine Configuration
# =============================================================================


class NormalizeConfig(BaseModel):
    """Schedule normalization settings."""

    evidence_cap: int = Field(
        default=8,
        ge=0,
        description="Maximum evidence entries kept per schedule",
    )
    evidence_window: int = Field(
        default=48,
        ge=1,
        le=500,
        description="Characters of context inspected on each side of a price mention",
    )


class ReconcileConfig(BaseModel):
    """Two-run agreement scoring settings."""

    weights: dict[str, float] = Field(
        default_factory=lambda: {
            "item_name": 0.35,
            "total_price": 0.25,
            "start_date": 0.10,
            "frequency_unit": 0.10,
            "frequency_every": 0.05,
            "unit_label": 0.05,
            "event_to_track": 0.05,
            "tiers": 0.05,
        },
        description="Per-field weight of the schedule similarity sum",
    )
    review_confidence: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Items below this confidence are flagged for review",
    )
    review_similarity: float = Field(
        default=0.70,
        ge=0.0,
        le=1.0,
        description="Items whose best match is below this similarity are flagged for review",
    )

    @field_validator("weights")
    @classmethod
    def weights_non_negative(cls, v: dict[str, float]) -> dict[str, float]:
        """Reject negative field weights."""
        for name, weight in v.items():
            if weight < 0:
                raise ValueError(f"weight for {name} must be >= 0")
        return v


class MatchingConfig(BaseModel):
    """Integration item fuzzy-match thresholds.

    Scores are non-positive; 0 is a perfect match.
    """

    high_above: float = Field(default=-1000, le=0)
    medium_above: float = Field(default=-5000, le=0)
    low_above: float = Field(default=-10000, le=0)

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "MatchingConfig":
        """Ensure high > medium > low."""
        if not (self.high_above > self.medium_above > self.low_above):
            raise ValueError("thresholds must satisfy high_above > medium_above > low_above")
        return self


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    normalize: NormalizeConfig = Field(default_factory=NormalizeConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)


# =============================================================================
# Merchant Guidance
# =============================================================================


class FieldGuidance(BaseModel):
    """Free-text extraction hints per schedule field."""

    item_name: str = ""
    description: str = ""
    total_price: str = ""
    billing_type: str = ""
    quantity: str = ""
    start_date: str = ""
    frequency_unit: str = ""
    periods: str = ""
    months_of_service: str = ""
    net_terms: str = ""
    billing_timing: str = ""
    event_to_track: str = ""
    general: str = ""

    def non_empty(self) -> dict[str, str]:
        """Return only the hints that carry text."""
        return {k: v for k, v in self.model_dump().items() if v and v.strip()}


class MerchantGuidance(BaseModel):
    """Read-only per-merchant guidance.

    The engine never mutates a guidance object; post-processing
    reads `default_overrides` and `excluded_fields` only.
    """

    model_config = {"frozen": True}

    system_additions: str = ""
    field_specific: FieldGuidance = Field(default_factory=FieldGuidance)
    default_overrides: dict[str, Any] = Field(
        default_factory=dict,
        description="Output field -> value used when the field is empty",
    )
    excluded_fields: list[str] = Field(
        default_factory=list,
        description="Output fields removed before records leave the engine",
    )


class IntegrationPair(BaseModel):
    """A contract item name and the external system's code for it."""

    model_config = {"frozen": True}

    contract_name: str
    external_code: str

    @model_validator(mode="before")
    @classmethod
    def from_sequence(cls, data: Any) -> Any:
        """Accept ``[name, code]`` pairs as well as mappings."""
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError("integration pair must have exactly two entries")
            return {"contract_name": data[0], "external_code": data[1]}
        return data

    @field_validator("contract_name", "external_code", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        """Codes are often numeric in source spreadsheets."""
        if v is None:
            raise ValueError("value is required")
        return str(v)

    def as_tuple(self) -> tuple[str, str]:
        return (self.contract_name, self.external_code)
