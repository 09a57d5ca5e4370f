"""
Field-level similarity metrics for two-run reconciliation.

All metrics return a float in [0, 1]. Two absent values count as a
perfect match; one absent value scores 0.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Mapping

from revsched.core.normalize.parsing import is_blank, to_date, to_number

DAYS_DECAY = 30

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def clamp01(value: Any) -> float:
    number = to_number(value)
    if number is None:
        return 0.0
    return max(0.0, min(1.0, number))


def tokenize(text: Any) -> set[str]:
    """Lower-cased alphanumeric tokens of length >= 2."""
    if is_blank(text):
        return set()
    cleaned = _NON_ALNUM.sub(" ", str(text).lower())
    return {token for token in cleaned.split() if len(token) > 1}


def jaccard_tokens(a: Any, b: Any) -> float:
    """Token-set Jaccard similarity."""
    left, right = tokenize(a), tokenize(b)
    if not left and not right:
        return 1.0
    union = left | right
    return len(left & right) / len(union) if union else 0.0


def numeric_similarity(a: Any, b: Any) -> float:
    """``1 - |a-b| / max(1, |a|, |b|)``, clamped."""
    if a is None and b is None:
        return 1.0
    if a is None or b is None:
        return 0.0
    x, y = to_number(a), to_number(b)
    if x is None or y is None:
        return 0.0
    return clamp01(1 - abs(x - y) / max(1.0, abs(x), abs(y)))


def date_similarity(a: Any, b: Any) -> float:
    """Exponential decay over the day distance, 30-day scale."""
    if is_blank(a) and is_blank(b):
        return 1.0
    if is_blank(a) or is_blank(b):
        return 0.0
    da, db = to_date(a), to_date(b)
    if da is None or db is None:
        return 0.0
    days = abs((db - da).days)
    return clamp01(math.exp(-days / DAYS_DECAY))


def enum_similarity(a: Any, b: Any) -> float:
    if is_blank(a) and is_blank(b):
        return 1.0
    if is_blank(a) or is_blank(b):
        return 0.0
    return 1.0 if str(a) == str(b) else 0.0


def tiers_similarity(a: Any, b: Any) -> float:
    """Index-aligned tier comparison averaged over the longer list.

    Each pair scores name 0.3, price 0.5 and minimum quantity 0.2; a
    missing tier compares as an empty one.
    """
    a_is_list = isinstance(a, (list, tuple))
    b_is_list = isinstance(b, (list, tuple))
    if not a_is_list and not b_is_list:
        return 1.0
    if not a_is_list or not b_is_list:
        return 0.0

    length = max(len(a), len(b))
    if length == 0:
        return 1.0

    total = 0.0
    for i in range(length):
        left = _tier_view(a[i] if i < len(a) else None)
        right = _tier_view(b[i] if i < len(b) else None)
        total += (
            jaccard_tokens(left.get("tier_name"), right.get("tier_name")) * 0.3
            + numeric_similarity(left.get("price"), right.get("price")) * 0.5
            + numeric_similarity(left.get("min_quantity"), right.get("min_quantity")) * 0.2
        )
    return clamp01(total / length)


def _tier_view(tier: Any) -> Mapping[str, Any]:
    if isinstance(tier, Mapping):
        return tier
    if tier is not None and hasattr(tier, "to_dict"):
        return tier.to_dict()
    return {}


FIELD_METRICS: dict[str, Callable[[Any, Any], float]] = {
    "item_name": jaccard_tokens,
    "total_price": numeric_similarity,
    "start_date": date_similarity,
    "frequency_unit": enum_similarity,
    "frequency_every": numeric_similarity,
    "unit_label": jaccard_tokens,
    "event_to_track": jaccard_tokens,
    "tiers": tiers_similarity,
}


def schedule_similarity(
    a: Mapping[str, Any],
    b: Mapping[str, Any],
    weights: Mapping[str, float],
) -> tuple[float, dict[str, float]]:
    """Weighted similarity of two schedule records plus the per-field breakdown."""
    fields = {name: metric(a.get(name), b.get(name)) for name, metric in FIELD_METRICS.items()}
    total = sum(weights.get(name, 0.0) * score for name, score in fields.items())
    return clamp01(total), fields
