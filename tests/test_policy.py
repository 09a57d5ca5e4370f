"""Tests for the billing-type demotion rules."""

from revsched.core.config.models import BillingType, FrequencyUnit
from revsched.core.normalize.canonical import CanonicalSchedule, Tier
from revsched.core.normalize.policy import (
    DEMOTION_RULES,
    STRAY_TIERS_ISSUE,
    TIER_WITHOUT_TIERS_ISSUE,
    TIME_BASED_UNIT_ISSUE,
    UNIT_WITHOUT_EVIDENCE_ISSUE,
    apply_demotion_policy,
    clear_stray_tiers,
    demote_tier_without_tiers,
    demote_time_based_unit,
    demote_unit_without_evidence,
)


def unit_schedule(**overrides) -> CanonicalSchedule:
    fields = dict(
        item_name="Support",
        billing_type=BillingType.UNIT_PRICE,
        total_price=500,
        quantity=10,
        frequency_unit=FrequencyUnit.MONTHS,
        frequency_every=1,
        periods=12,
        unit_label="month",
        price_per_unit=50,
        volume_based=True,
    )
    fields.update(overrides)
    return CanonicalSchedule(**fields)


class TestUnitWithoutEvidence:
    def test_demotes_and_clears_usage_fields(self):
        result = demote_unit_without_evidence(unit_schedule(event_to_track="logins"), {})
        assert result.billing_type is BillingType.FLAT_PRICE
        assert result.quantity == 1
        assert result.unit_label is None
        assert result.price_per_unit is None
        assert result.volume_based is None
        assert result.event_to_track is None
        assert result.issues == (UNIT_WITHOUT_EVIDENCE_ISSUE,)

    def test_keeps_unit_with_evidence(self):
        schedule = unit_schedule()
        assert demote_unit_without_evidence(schedule, {"description": "$5 per user"}) is schedule

    def test_ignores_other_types(self):
        schedule = unit_schedule(billing_type=BillingType.FLAT_PRICE)
        assert demote_unit_without_evidence(schedule, {}) is schedule


class TestTimeBasedUnit:
    def test_time_label_demoted(self):
        result = demote_time_based_unit(unit_schedule(), {"price_per_unit": 50, "unit_label": "month"})
        assert result.billing_type is BillingType.FLAT_PRICE
        assert result.issues == (TIME_BASED_UNIT_ISSUE,)

    def test_tracked_event_kept(self):
        schedule = unit_schedule(event_to_track="api_calls")
        assert demote_time_based_unit(schedule, {}) is schedule

    def test_usage_label_kept(self):
        schedule = unit_schedule(unit_label="seat")
        assert demote_time_based_unit(schedule, {"unit_label": "seat"}) is schedule

    def test_usage_language_kept(self):
        schedule = unit_schedule()
        assert demote_time_based_unit(schedule, {"description": "overage billed monthly"}) is schedule

    def test_one_time_kept(self):
        schedule = unit_schedule(frequency_unit=FrequencyUnit.NONE, periods=0)
        assert demote_time_based_unit(schedule, {}) is schedule


def test_tier_without_tiers():
    schedule = unit_schedule(billing_type=BillingType.TIER_FLAT_PRICE, unit_label=None)
    result = demote_tier_without_tiers(schedule, {})
    assert result.billing_type is BillingType.FLAT_PRICE
    assert result.quantity == 1
    assert result.issues == (TIER_WITHOUT_TIERS_ISSUE,)


def test_tier_with_tiers_kept():
    schedule = unit_schedule(billing_type=BillingType.TIER_UNIT_PRICE, tiers=(Tier(price=1),))
    assert demote_tier_without_tiers(schedule, {}) is schedule


def test_stray_tiers_cleared():
    schedule = CanonicalSchedule(item_name="Hosting", tiers=(Tier(price=1),))
    result = clear_stray_tiers(schedule, {})
    assert result.tiers == ()
    assert result.issues == (STRAY_TIERS_ISSUE,)


class TestPolicyPipeline:
    def test_rules_run_in_order(self):
        assert DEMOTION_RULES[0] is demote_unit_without_evidence
        assert DEMOTION_RULES[-1] is clear_stray_tiers

    def test_time_based_price_demoted_once(self):
        candidate = {"price_per_unit": 50, "unit_label": "month"}
        result = apply_demotion_policy(unit_schedule(), candidate)
        assert result.billing_type is BillingType.FLAT_PRICE
        assert result.issues == (TIME_BASED_UNIT_ISSUE,)

    def test_custom_rule_list(self):
        schedule = unit_schedule()
        assert apply_demotion_policy(schedule, {}, rules=[]) is schedule

    def test_original_record_untouched(self):
        schedule = unit_schedule()
        apply_demotion_policy(schedule, {})
        assert schedule.billing_type is BillingType.UNIT_PRICE
        assert schedule.issues == ()
