"""
Billing type and frequency canonicalization.

Maps free-text billing-type and frequency signals onto the fixed
enumerations. Every function here returns a valid enum member; bad
input degrades to a default, never to an exception.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from revsched.core.config.models import BillingType, FrequencyUnit
from revsched.core.config.synonyms import (
    FREQUENCY_HINTS,
    NO_FREQUENCY_HINTS,
    PER_UNIT_PATTERN,
    USAGE_WORDS_PATTERN,
)

from .parsing import clamp_enum, is_blank, join_text, to_number


def evidence_snippets(record: Mapping[str, Any]) -> list[str]:
    """Return the quoted text of every evidence entry on a record."""
    evidence = record.get("evidence")
    if not isinstance(evidence, (list, tuple)):
        return []

    snippets: list[str] = []
    for entry in evidence:
        if isinstance(entry, Mapping):
            snippet = entry.get("snippet") or entry.get("text") or entry.get("quote")
        elif isinstance(entry, str):
            snippet = entry
        else:
            snippet = getattr(entry, "snippet", None)
        if not is_blank(snippet):
            snippets.append(str(snippet))
    return snippets


def tier_count(record: Mapping[str, Any]) -> int:
    tiers = record.get("tiers")
    return len(tiers) if isinstance(tiers, (list, tuple)) else 0


def has_usage_language(record: Mapping[str, Any]) -> bool:
    """Check the record's text for per-unit phrases or metering keywords.

    Time nouns (month/year/week/day) never count: "$500 per month"
    describes a billing frequency, not a usage unit.
    """
    haystack = join_text(
        [record.get("item_name"), record.get("description"), record.get("unit_label")]
        + evidence_snippets(record)
    ).lower()
    return bool(PER_UNIT_PATTERN.search(haystack) or USAGE_WORDS_PATTERN.search(haystack))


def has_strong_unit_evidence(record: Mapping[str, Any]) -> bool:
    """Check whether a record carries explicit per-unit or metered-usage evidence."""
    if has_usage_language(record):
        return True

    has_unit_price = to_number(record.get("price_per_unit")) is not None
    has_unit_label = not is_blank(record.get("unit_label"))
    if has_unit_price and has_unit_label:
        return True

    return tier_count(record) > 0


def normalize_billing_type(hint: Any, record: Mapping[str, Any] | None = None) -> BillingType:
    """Resolve a billing type from a hint string and its owning record.

    Order: tiers present, then per-unit evidence, then textual
    "tier"+"unit" / "tier"+"flat" hints, then Flat price.
    """
    record = record or {}

    if tier_count(record) > 0:
        return BillingType.TIER_UNIT_PRICE
    if has_strong_unit_evidence(record):
        return BillingType.UNIT_PRICE

    text = hint.value if isinstance(hint, BillingType) else str(hint or "")
    text = text.lower()
    if "tier" in text and "unit" in text:
        return BillingType.TIER_UNIT_PRICE
    if "tier" in text and "flat" in text:
        return BillingType.TIER_FLAT_PRICE
    return BillingType.FLAT_PRICE


@dataclass(frozen=True)
class Frequency:
    """A resolved billing cadence."""

    unit: FrequencyUnit
    every: int
    inferred: bool = False  # unit came from free text rather than an explicit value


def _coerce_every(value: Any) -> int:
    number = to_number(value) if not isinstance(value, str) else _strict_number(value)
    if number is None:
        return 1
    return int(number) if number >= 1 else 1


def _strict_number(value: str) -> float | None:
    """Parse a whole string as a number; "every 3 months" is not a multiplier."""
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def normalize_frequency(
    text: Any,
    every: Any,
    unit: Any,
    fallback: FrequencyUnit = FrequencyUnit.NONE,
) -> Frequency:
    """Resolve a (unit, multiplier) pair from a frequency hint triple.

    An explicit unit that is already a recognized enum value wins;
    otherwise the unit is inferred from the free text. The multiplier
    defaults to 1 and is always 1 when the unit is None.
    """
    resolved = clamp_enum(unit, FrequencyUnit, None)
    multiplier = _coerce_every(every)
    inferred = False

    if resolved is None:
        inferred = True
        hint = str(text if text is not None else "").strip().lower()
        if not hint or hint in NO_FREQUENCY_HINTS or "one-time" in hint:
            resolved = FrequencyUnit.NONE
        else:
            for needle, value in FREQUENCY_HINTS:
                if needle in hint:
                    resolved = FrequencyUnit(value)
                    break
            else:
                resolved = fallback

    if resolved is FrequencyUnit.NONE:
        multiplier = 1

    return Frequency(unit=resolved, every=multiplier, inferred=inferred)
