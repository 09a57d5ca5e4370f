"""
Billing-type demotion policy.

An ordered list of pure rules. Each rule receives the schedule built so
far and the raw candidate it came from, and returns either the same
schedule or a corrected copy with one issue appended.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from revsched.core.config.models import BillingType, FrequencyUnit
from revsched.core.config.synonyms import TIME_UNIT_LABEL_PATTERN

from .enums import has_strong_unit_evidence, has_usage_language
from .parsing import is_blank

if TYPE_CHECKING:
    from .canonical import CanonicalSchedule

logger = logging.getLogger(__name__)

DemotionRule = Callable[["CanonicalSchedule", Mapping[str, Any]], "CanonicalSchedule"]

UNIT_WITHOUT_EVIDENCE_ISSUE = "Demoted Unit → Flat: missing explicit per-unit/usage evidence."
TIME_BASED_UNIT_ISSUE = (
    "Demoted Unit → Flat: time-based price detected (e.g., $/month). "
    "Frequency is not a usage unit."
)
TIER_WITHOUT_TIERS_ISSUE = "Demoted Tier → Flat: no tiers found."
STRAY_TIERS_ISSUE = "Cleared tiers on non-tier billing type."


def demote_to_flat(schedule: "CanonicalSchedule", issue: str) -> "CanonicalSchedule":
    """Flat price copy with all usage-pricing fields cleared."""
    logger.debug("Demoting %r: %s", schedule.item_name, issue)
    return replace(
        schedule,
        billing_type=BillingType.FLAT_PRICE,
        quantity=1,
        event_to_track=None,
        unit_label=None,
        price_per_unit=None,
        volume_based=None,
        tiers=(),
    ).with_issue(issue)


def demote_unit_without_evidence(
    schedule: "CanonicalSchedule", candidate: Mapping[str, Any]
) -> "CanonicalSchedule":
    if schedule.billing_type is not BillingType.UNIT_PRICE:
        return schedule
    if has_strong_unit_evidence(candidate):
        return schedule
    return demote_to_flat(schedule, UNIT_WITHOUT_EVIDENCE_ISSUE)


def demote_time_based_unit(
    schedule: "CanonicalSchedule", candidate: Mapping[str, Any]
) -> "CanonicalSchedule":
    """A "$500 per month" line is a recurring flat fee, not a usage price."""
    if schedule.billing_type is not BillingType.UNIT_PRICE:
        return schedule
    if schedule.frequency_unit is FrequencyUnit.NONE or not is_blank(schedule.event_to_track):
        return schedule

    label = schedule.unit_label
    label_is_time = is_blank(label) or bool(TIME_UNIT_LABEL_PATTERN.search(str(label)))
    if not label_is_time or has_usage_language(candidate):
        return schedule
    return demote_to_flat(schedule, TIME_BASED_UNIT_ISSUE)


def demote_tier_without_tiers(
    schedule: "CanonicalSchedule", candidate: Mapping[str, Any]
) -> "CanonicalSchedule":
    if not schedule.billing_type.is_tier or schedule.tiers:
        return schedule
    return demote_to_flat(schedule, TIER_WITHOUT_TIERS_ISSUE)


def clear_stray_tiers(
    schedule: "CanonicalSchedule", candidate: Mapping[str, Any]
) -> "CanonicalSchedule":
    if schedule.billing_type.is_tier or not schedule.tiers:
        return schedule
    return replace(schedule, tiers=()).with_issue(STRAY_TIERS_ISSUE)


DEMOTION_RULES: list[DemotionRule] = [
    demote_unit_without_evidence,
    demote_time_based_unit,
    demote_tier_without_tiers,
    clear_stray_tiers,
]


def apply_demotion_policy(
    schedule: "CanonicalSchedule",
    candidate: Mapping[str, Any],
    rules: Sequence[DemotionRule] | None = None,
) -> "CanonicalSchedule":
    """Run every rule in order, threading the schedule through."""
    for rule in DEMOTION_RULES if rules is None else rules:
        schedule = rule(schedule, candidate)
    return schedule
