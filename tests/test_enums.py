"""Tests for billing type and frequency canonicalization."""

import pytest

from revsched.core.config.models import BillingType, FrequencyUnit
from revsched.core.normalize.enums import (
    evidence_snippets,
    has_strong_unit_evidence,
    has_usage_language,
    normalize_billing_type,
    normalize_frequency,
)


class TestUnitEvidence:
    @pytest.mark.parametrize(
        "record",
        [
            {"description": "$12 per seat per month"},
            {"item_name": "SMS credits", "description": "billed at $0.01/sms"},
            {"evidence": [{"snippet": "Overage charged at list rate"}]},
            {"description": "Each API call is metered"},
            {"price_per_unit": "0.05", "unit_label": "call"},
            {"tiers": [{"price": 10}]},
        ],
    )
    def test_detected(self, record):
        assert has_strong_unit_evidence(record)

    @pytest.mark.parametrize(
        "record",
        [
            {},
            {"description": "$500 per month"},
            {"description": "Annual fee of $12,000 per year"},
            {"item_name": "Support", "unit_label": "month"},
            {"price_per_unit": 5},
        ],
    )
    def test_time_nouns_are_not_usage(self, record):
        assert not has_strong_unit_evidence(record)

    def test_usage_language_ignores_price_and_label_pair(self):
        record = {"price_per_unit": 500, "unit_label": "month"}
        assert has_strong_unit_evidence(record)
        assert not has_usage_language(record)

    def test_evidence_snippets_accepts_strings_and_mappings(self):
        record = {"evidence": [{"snippet": "a"}, "b", {"page": 1}, None]}
        assert evidence_snippets(record) == ["a", "b"]

    def test_evidence_snippets_reads_text_and_quote(self):
        record = {"evidence": [{"text": "a"}, {"quote": "b"}, {"snippet": "", "text": "c"}]}
        assert evidence_snippets(record) == ["a", "b", "c"]

    def test_quoted_evidence_counts_as_usage(self):
        assert has_usage_language({"evidence": [{"quote": "Overage billed per SMS"}]})


class TestNormalizeBillingType:
    def test_tiers_win(self):
        assert normalize_billing_type("Flat price", {"tiers": [{"price": 1}]}) is BillingType.TIER_UNIT_PRICE

    def test_unit_evidence(self):
        assert normalize_billing_type(None, {"description": "$10 per user"}) is BillingType.UNIT_PRICE

    def test_textual_tier_hints(self):
        assert normalize_billing_type("Tier unit price", {}) is BillingType.TIER_UNIT_PRICE
        assert normalize_billing_type("tiered flat fee", {}) is BillingType.TIER_FLAT_PRICE

    def test_unit_hint_without_evidence_is_flat(self):
        assert normalize_billing_type("Unit price", {"description": "$500 per month"}) is BillingType.FLAT_PRICE

    def test_default(self):
        assert normalize_billing_type(None) is BillingType.FLAT_PRICE
        assert normalize_billing_type("something else", {}) is BillingType.FLAT_PRICE


class TestNormalizeFrequency:
    def test_explicit_unit(self):
        freq = normalize_frequency(None, None, "Month(s)")
        assert (freq.unit, freq.every, freq.inferred) == (FrequencyUnit.MONTHS, 1, False)

    def test_explicit_unit_keeps_multiplier(self):
        assert normalize_frequency(None, "3", "Month(s)").every == 3

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Billed annually", FrequencyUnit.YEARS),
            ("monthly", FrequencyUnit.MONTHS),
            ("every two weeks", FrequencyUnit.WEEKS),
            ("semi-annual", FrequencyUnit.YEARS),
            ("every 30 days", FrequencyUnit.DAYS),
            ("one-time", FrequencyUnit.NONE),
            ("None", FrequencyUnit.NONE),
            ("", FrequencyUnit.NONE),
            (None, FrequencyUnit.NONE),
        ],
    )
    def test_inferred_from_text(self, text, expected):
        freq = normalize_frequency(text, None, None)
        assert freq.unit is expected
        assert freq.inferred

    def test_inferred_unit_keeps_multiplier(self):
        freq = normalize_frequency("Billed annually", 2, "yearly")
        assert freq.unit is FrequencyUnit.YEARS
        assert freq.every == 2

    def test_unknown_text_uses_fallback(self):
        assert normalize_frequency("quarterly", None, None).unit is FrequencyUnit.NONE
        assert normalize_frequency("quarterly", None, None, FrequencyUnit.MONTHS).unit is FrequencyUnit.MONTHS

    def test_none_unit_forces_multiplier(self):
        assert normalize_frequency("one-time", 5, None).every == 1

    @pytest.mark.parametrize("every", [0, -2, "0", "abc", "every 3", None, float("inf")])
    def test_bad_multiplier_defaults_to_one(self, every):
        assert normalize_frequency(None, every, "Month(s)").every == 1

    def test_fractional_multiplier_truncates(self):
        assert normalize_frequency(None, 2.7, "Week(s)").every == 2
