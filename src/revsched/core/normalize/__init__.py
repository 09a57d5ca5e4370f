"""Normalization and canonicalization of extracted schedules."""

from .parsing import (
    ParsedDate,
    parse_date,
    to_number,
    to_date,
    clamp_enum,
    round_half_up,
    normalize_whitespace,
)
from .enums import (
    Frequency,
    has_strong_unit_evidence,
    normalize_billing_type,
    normalize_frequency,
)
from .frequency import (
    ServiceTerm,
    derive_months_of_service,
    months_from_dates,
    months_from_periods,
    periods_from_months,
)
from .pricing import (
    ContextWindowScorer,
    PriceResolution,
    PriceResolver,
    PriceScorer,
    best_price,
    explicit_zero_signal,
)
from .policy import DEMOTION_RULES, apply_demotion_policy
from .canonical import (
    CanonicalSchedule,
    Evidence,
    ScheduleNormalizer,
    Tier,
    normalize_schedule,
    normalize_schedules,
)

__all__ = [
    # Parsing
    "ParsedDate",
    "parse_date",
    "to_number",
    "to_date",
    "clamp_enum",
    "round_half_up",
    "normalize_whitespace",
    # Enums
    "Frequency",
    "has_strong_unit_evidence",
    "normalize_billing_type",
    "normalize_frequency",
    # Frequency
    "ServiceTerm",
    "derive_months_of_service",
    "months_from_dates",
    "months_from_periods",
    "periods_from_months",
    # Pricing
    "ContextWindowScorer",
    "PriceResolution",
    "PriceResolver",
    "PriceScorer",
    "best_price",
    "explicit_zero_signal",
    # Policy
    "DEMOTION_RULES",
    "apply_demotion_policy",
    # Canonical
    "CanonicalSchedule",
    "Evidence",
    "ScheduleNormalizer",
    "Tier",
    "normalize_schedule",
    "normalize_schedules",
]
