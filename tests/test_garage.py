"""Tests for projection into the billing system schema."""

import pytest

from revsched.core.config.models import (
    BillingTiming,
    BillingType,
    FrequencyUnit,
    GarageBillingType,
    GarageFrequencyUnit,
    MatchConfidence,
)
from revsched.core.config.synonyms import ONE_TIME_DEFAULT_DESCRIPTION, ONE_TIME_DEFAULT_NAME
from revsched.core.integration.matching import IntegrationMatch
from revsched.core.normalize.canonical import CanonicalSchedule, Tier, normalize_schedules
from revsched.core.project.garage import (
    to_garage_all,
    to_garage_billing_type,
    to_garage_frequency,
    to_garage_schedule,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (BillingType.FLAT_PRICE, GarageBillingType.FLAT_PRICE),
        ("Unit price", GarageBillingType.UNIT_PRICE),
        ("Tier flat price", GarageBillingType.TIER_FLAT_PRICE),
        (BillingType.TIER_UNIT_PRICE, GarageBillingType.TIER_UNIT_PRICE),
        ("bogus", GarageBillingType.FLAT_PRICE),
        (None, GarageBillingType.FLAT_PRICE),
    ],
)
def test_billing_type_mapping(value, expected):
    assert to_garage_billing_type(value) is expected


@pytest.mark.parametrize(
    "unit,every,months,expected",
    [
        ("Month(s)", 3, 12, (GarageFrequencyUnit.QUARTER, 1, 4)),
        ("Month(s)", 1, 12, (GarageFrequencyUnit.MONTH, 1, 12)),
        ("Month(s)", 6, 24, (GarageFrequencyUnit.MONTH, 6, 4)),
        ("Year(s)", 1, 24, (GarageFrequencyUnit.YEAR, 1, 2)),
        ("Semi_month(s)", 1, 2, (GarageFrequencyUnit.SEMI_MONTH, 1, 4)),
        ("Week(s)", 2, 3, (GarageFrequencyUnit.DAYS, 14, 6)),
        ("Day(s)", 10, 2, (GarageFrequencyUnit.DAYS, 10, 1)),
        ("None", 3, 12, (GarageFrequencyUnit.NONE, 1, 0)),
        (None, 1, 12, (GarageFrequencyUnit.NONE, 1, 0)),
    ],
)
def test_frequency_mapping(unit, every, months, expected):
    freq = to_garage_frequency(unit, every, months)
    assert (freq.frequency_unit, freq.period, freq.number_of_periods) == expected


class TestProjection:
    def test_payload_projection(self, payload):
        support, license_, setup = to_garage_all(normalize_schedules(payload))

        assert support.frequency_unit is GarageFrequencyUnit.QUARTER
        assert (support.period, support.number_of_periods) == (1, 4)
        assert support.service_term == 12
        assert support.total_price == 3000
        assert support.quantity == 1
        assert support.net_terms == 30
        assert support.start_date == support.service_start_date == "2024-01-01"

        assert license_.frequency_unit is GarageFrequencyUnit.YEAR
        assert license_.number_of_periods == 2
        assert license_.service_term == 24

        assert setup.frequency_unit is GarageFrequencyUnit.NONE
        assert setup.number_of_periods == 0
        assert setup.service_term == 0
        assert setup.total_price == 5000
        assert setup.item_name == "Implementation Services"

    def test_service_term_recomputed_from_dates(self):
        schedule = CanonicalSchedule(
            item_name="Hosting",
            total_price=100,
            start_date="2024-01-01",
            calculated_end_date="2024-12-31",
            months_of_service=6,
            frequency_unit=FrequencyUnit.MONTHS,
            periods=6,
        )
        garage = to_garage_schedule(schedule)
        assert garage.service_term == 12
        assert garage.number_of_periods == 12

    def test_carries_arrears_category_and_code(self):
        schedule = CanonicalSchedule(
            item_name="Support",
            total_price=100,
            frequency_unit=FrequencyUnit.MONTHS,
            billing_timing=BillingTiming.LAST,
            arrears=True,
            rev_rec_category="Subscription",
        ).with_integration(IntegrationMatch("SUP-001", MatchConfidence.HIGH, 0, "Support"))
        garage = to_garage_schedule(schedule)
        assert garage.arrears is True
        assert garage.revenue_category == "Subscription"
        assert garage.integration_item == "SUP-001"

    def test_unit_quantity_kept(self):
        schedule = CanonicalSchedule(
            item_name="Seats", billing_type=BillingType.UNIT_PRICE, quantity=40, total_price=480
        )
        assert to_garage_schedule(schedule).quantity == 40

    def test_mapping_input(self):
        garage = to_garage_schedule({"item_name": "Hosting", "total_price": 10, "frequency_unit": "Month(s)"})
        assert garage.frequency_unit is GarageFrequencyUnit.MONTH
        assert garage.number_of_periods == 1


class TestPrice:
    def test_unresolved_price_stays_null(self):
        assert to_garage_schedule(CanonicalSchedule(item_name="Mystery")).total_price is None

    def test_explicit_zero_kept(self):
        schedule = CanonicalSchedule(item_name="Training", description="complimentary", total_price=0.0)
        assert to_garage_schedule(schedule).total_price == 0

    def test_falls_back_to_evidence(self):
        garage = to_garage_schedule({"item_name": "Hosting", "description": "Hosting at $75 per month"})
        assert garage.total_price == 75


class TestTiers:
    def test_tier_serialization(self):
        schedule = CanonicalSchedule(
            item_name="API calls",
            billing_type=BillingType.TIER_UNIT_PRICE,
            tiers=(
                Tier(tier_name="Base", price=48.0, min_quantity=100),
                Tier(applied_when="above 1000 calls", price=0.05),
            ),
        )
        tiers = [t.to_dict() for t in to_garage_schedule(schedule).pricing_tiers]
        assert tiers == [
            {
                "tier": 1,
                "mantissa": "48",
                "exponent": "0",
                "condition_value": 100,
                "condition_operator": "GREATER_THAN_EQUAL",
                "name": "Base",
            },
            {
                "tier": 2,
                "mantissa": "0.05",
                "exponent": "0",
                "condition_value": None,
                "condition_operator": None,
                "name": "above 1000 calls",
            },
        ]

    def test_flat_has_no_tiers(self):
        assert to_garage_schedule(CanonicalSchedule(item_name="x", total_price=1)).pricing_tiers == ()


class TestOneTimeDefaults:
    def test_unnamed_one_time_item(self):
        garage = to_garage_schedule(CanonicalSchedule(total_price=100))
        assert garage.item_name == ONE_TIME_DEFAULT_NAME
        assert garage.item_description == ONE_TIME_DEFAULT_DESCRIPTION

    def test_recurring_setup_text(self):
        schedule = CanonicalSchedule(
            item_name="Setup assistance", total_price=100, frequency_unit=FrequencyUnit.MONTHS
        )
        garage = to_garage_schedule(schedule)
        assert garage.item_name == "Setup assistance"
        assert garage.item_description == ONE_TIME_DEFAULT_DESCRIPTION

    def test_recurring_item_untouched(self):
        schedule = CanonicalSchedule(item_name="", total_price=100, frequency_unit=FrequencyUnit.MONTHS)
        garage = to_garage_schedule(schedule)
        assert garage.item_name == ""
        assert garage.item_description is None


def test_to_dict_wire_shape(payload):
    data = to_garage_all(normalize_schedules(payload))[0].to_dict()
    assert data["billing_type"] == "FLAT_PRICE"
    assert data["frequency_unit"] == "QUARTER"
    assert data["discounts"] == []
    assert data["pricing_tiers"] == []
    assert data["integration_item"] is None
    assert set(data) == {
        "service_start_date",
        "service_term",
        "revenue_category",
        "item_name",
        "item_description",
        "start_date",
        "frequency_unit",
        "period",
        "number_of_periods",
        "arrears",
        "billing_type",
        "event_to_track",
        "integration_item",
        "discounts",
        "net_terms",
        "quantity",
        "total_price",
        "pricing_tiers",
    }
