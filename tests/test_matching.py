"""Tests for integration code fuzzy matching."""

import pytest

from revsched.core.config.models import IntegrationPair, MatchConfidence, MatchingConfig
from revsched.core.integration.matching import (
    IntegrationMatch,
    annotate_schedules,
    confidence_for_score,
    match_integration_item,
    ratio_to_score,
)
from revsched.core.normalize.canonical import CanonicalSchedule
from revsched.core.project.garage import to_garage_schedule


class TestMatchIntegrationItem:
    def test_exact_name_is_high(self, integration_pairs):
        result = match_integration_item("Platform Support Plan", integration_pairs)
        assert result.confidence is MatchConfidence.HIGH
        assert result.integration_item == "SUP-001"
        assert result.matched_name == "Platform Support Plan"
        assert result.score == 0

    def test_case_insensitive(self, integration_pairs):
        result = match_integration_item("platform license", integration_pairs)
        assert result.integration_item == "LIC-100"
        assert result.confidence is MatchConfidence.HIGH

    def test_close_name(self, integration_pairs):
        result = match_integration_item("Implementation Services - Phase 1", integration_pairs)
        assert result.integration_item == "SVC-900"
        assert result.confidence in (MatchConfidence.HIGH, MatchConfidence.MEDIUM)

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_empty_name(self, name, integration_pairs):
        result = match_integration_item(name, integration_pairs)
        assert result == IntegrationMatch.no_match()

    def test_no_pairs(self):
        result = match_integration_item("Platform Support Plan", [])
        assert result.confidence is MatchConfidence.NONE
        assert result.integration_item is None
        assert result.score == 0

    def test_unrelated_name(self, integration_pairs):
        result = match_integration_item("zzzz", integration_pairs)
        assert result.confidence is MatchConfidence.NONE
        assert result.integration_item is None

    @pytest.mark.parametrize("name", ["Office coffee", "Catering", "Travel expenses", "Hardware lease"])
    def test_weak_match_gets_no_code(self, name, integration_pairs):
        result = match_integration_item(name, integration_pairs)
        assert result.confidence is MatchConfidence.NONE
        assert result.integration_item is None
        assert result.score <= -10000

    def test_raw_pairs_accepted(self):
        result = match_integration_item("Platform Support Plan", [["Platform Support Plan", 1001]])
        assert result.integration_item == "1001"

    def test_first_duplicate_wins(self):
        pairs = [("Hosting", "H-1"), ("Hosting", "H-2")]
        assert match_integration_item("Hosting", pairs).integration_item == "H-1"

    def test_to_dict(self, integration_pairs):
        data = match_integration_item("Platform License", integration_pairs).to_dict()
        assert data == {
            "integration_item": "LIC-100",
            "match_confidence": "high",
            "match_score": 0,
            "matched_contract_name": "Platform License",
        }


class TestConfidenceBands:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, MatchConfidence.HIGH),
            (-999, MatchConfidence.HIGH),
            (-1000, MatchConfidence.MEDIUM),
            (-4999, MatchConfidence.MEDIUM),
            (-5000, MatchConfidence.LOW),
            (-9999, MatchConfidence.LOW),
            (-10000, MatchConfidence.NONE),
        ],
    )
    def test_default_bands(self, score, expected):
        assert confidence_for_score(score) is expected

    def test_custom_bands(self):
        config = MatchingConfig(high_above=-100, medium_above=-200, low_above=-300)
        assert confidence_for_score(-150, config) is MatchConfidence.MEDIUM

    def test_bands_must_be_ordered(self):
        with pytest.raises(ValueError):
            MatchingConfig(high_above=-5000, medium_above=-1000)


def test_annotate_schedules(integration_pairs):
    schedules = [CanonicalSchedule(item_name="Platform License"), CanonicalSchedule(item_name="")]
    annotated = annotate_schedules(schedules, integration_pairs)

    assert annotated[0].integration_item == "LIC-100"
    assert annotated[1].integration.confidence is MatchConfidence.NONE
    assert schedules[0].integration is None

    data = annotated[0].to_dict()
    assert data["integration_item"] == "LIC-100"
    assert data["integration_match_confidence"] == "high"
    assert data["integration_matched_name"] == "Platform License"


def test_integration_pair_from_mapping():
    pair = IntegrationPair.model_validate({"contract_name": "API Overage", "external_code": 200})
    assert pair.as_tuple() == ("API Overage", "200")


@pytest.mark.parametrize(
    "ratio,expected",
    [
        (100, MatchConfidence.HIGH),
        (97, MatchConfidence.HIGH),
        (96, MatchConfidence.MEDIUM),
        (81, MatchConfidence.MEDIUM),
        (80, MatchConfidence.LOW),
        (61, MatchConfidence.LOW),
        (60, MatchConfidence.NONE),
        (36, MatchConfidence.NONE),
    ],
)
def test_ratio_bands(ratio, expected):
    assert confidence_for_score(ratio_to_score(ratio)) is expected


def test_unrelated_item_has_no_code_in_projection(integration_pairs):
    schedules = annotate_schedules([CanonicalSchedule(item_name="Office coffee", total_price=10)], integration_pairs)
    assert to_garage_schedule(schedules[0]).integration_item is None
