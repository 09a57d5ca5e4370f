"""Tests for payload parsing and the end-to-end pipeline."""

import orjson
import pytest

from revsched.core.config.models import MatchConfidence, MerchantGuidance
from revsched.core.normalize.canonical import CanonicalSchedule
from revsched.core.orchestrator.runner import (
    ExtractionPayload,
    PayloadError,
    PipelineRunner,
    decide_rerun,
    parse_extraction_payload,
    process_extraction,
)


class TestParsePayload:
    def test_plain_json(self, payload):
        parsed = parse_extraction_payload(orjson.dumps(payload).decode())
        assert len(parsed.schedules) == 3
        assert parsed.issues == ["Contract total not stated"]
        assert parsed.totals_check["sum_of_items"] == 32000
        assert parsed.model_recommendations["force_multi"] is True

    def test_bytes(self, payload):
        assert len(parse_extraction_payload(orjson.dumps(payload)).schedules) == 3

    def test_fenced_json(self, payload):
        text = "Here is the extraction:\n```json\n" + orjson.dumps(payload).decode() + "\n```\nDone."
        assert len(parse_extraction_payload(text).schedules) == 3

    def test_decoded_mapping(self, payload):
        assert parse_extraction_payload(payload).issues == ["Contract total not stated"]

    def test_bare_list(self, support_candidate):
        parsed = parse_extraction_payload([support_candidate])
        assert parsed.schedules == [support_candidate]
        assert parsed.issues == []
        assert parsed.totals_check is None

    @pytest.mark.parametrize("text", ["no json here", "{bad", "{\"schedules\": [}"])
    def test_garbage_raises(self, text):
        with pytest.raises(PayloadError) as exc:
            parse_extraction_payload(text)
        assert exc.value.raw == text

    def test_malformed_sections_ignored(self):
        parsed = ExtractionPayload.from_data({"schedules": [], "issues": "oops", "totals_check": [1]})
        assert parsed.issues == []
        assert parsed.totals_check is None


class TestRerunDecision:
    def test_complete_schedules(self):
        schedules = [CanonicalSchedule(item_name="a", start_date="2024-01-01", total_price=10.0)]
        decision = decide_rerun(schedules)
        assert not decision.rerun
        assert decision.hint_text() == ""

    def test_missing_start_date(self):
        decision = decide_rerun([CanonicalSchedule(item_name="a", total_price=10.0)])
        assert decision.rerun
        assert decision.missing_start_date
        assert decision.hint_text().startswith("RETRY FOCUS")
        assert "start_date" in decision.hint_text()
        assert decision.to_dict()["hint_text"] == decision.hint_text()

    def test_missing_name(self):
        decision = decide_rerun([CanonicalSchedule(item_name=" ", start_date="2024-01-01", total_price=1.0)])
        assert decision.missing_name
        assert decision.hints == ["A non-empty item_name"]

    def test_all_totals_zero(self):
        schedules = [
            CanonicalSchedule(item_name="a", start_date="2024-01-01", total_price=0.0),
            CanonicalSchedule(item_name="b", start_date="2024-01-01", total_price=0.0),
        ]
        assert decide_rerun(schedules).all_totals_zero

    def test_one_nonzero_total(self):
        schedules = [
            CanonicalSchedule(item_name="a", start_date="2024-01-01", total_price=0.0),
            CanonicalSchedule(item_name="b", start_date="2024-01-01", total_price=5.0),
        ]
        assert not decide_rerun(schedules).all_totals_zero

    def test_empty(self):
        assert not decide_rerun([]).rerun


class TestPipeline:
    def test_single_run(self, payload):
        result = process_extraction(payload)

        assert [s.item_name for s in result.schedules] == [
            "Platform Support Plan",
            "Platform License",
            "Implementation Services",
        ]
        assert result.agreement is None
        assert result.flagged == []
        assert not result.rerun.rerun
        assert len(result.garage) == 3
        assert result.garage[0]["frequency_unit"] == "QUARTER"
        assert result.payload_issues == ["Contract total not stated"]

    def test_two_runs_pairs_and_guidance(self, payload, integration_pairs):
        guidance = MerchantGuidance(
            default_overrides={"revenue_category": "Subscription"},
            excluded_fields=["discounts"],
        )
        result = process_extraction(
            orjson.dumps(payload).decode(),
            payload,
            guidance=guidance,
            pairs=integration_pairs,
            contract_id="C-1",
        )

        assert result.agreement.flagged == 0
        assert result.agreement.unmatched_in_run2 == 0
        assert all(s.agreement is not None for s in result.schedules)
        assert result.schedules[0].integration.confidence is MatchConfidence.HIGH
        assert [g["integration_item"] for g in result.garage] == ["SUP-001", "LIC-100", "SVC-900"]
        assert all(g["revenue_category"] == "Subscription" for g in result.garage)
        assert all("discounts" not in g for g in result.garage)

    def test_to_dict_is_serializable(self, payload, integration_pairs):
        data = process_extraction(payload, payload, pairs=integration_pairs).to_dict()
        decoded = orjson.loads(orjson.dumps(data))

        assert set(decoded) == {
            "schedules",
            "garage",
            "agreement",
            "rerun",
            "issues",
            "totals_check",
            "model_recommendations",
        }
        first = decoded["schedules"][0]
        assert first["integration_item"] == "SUP-001"
        assert first["agreement"]["matched_index_in_run2"] == 0
        assert first["flag_for_review"] is False
        assert decoded["agreement"]["total_items_run2"] == 3

    def test_disagreeing_second_run_flags(self, payload):
        second = {"schedules": [dict(payload["schedules"][0], total_price=99, start_date="2026-01-01")]}
        result = process_extraction(payload, second)

        assert result.schedules[0].agreement.flag_for_review
        assert result.schedules[1].agreement.matched_index is None
        assert result.agreement.unmatched_in_run1 == 2
        assert len(result.flagged) == 3

    def test_unparseable_payload(self):
        with pytest.raises(PayloadError):
            PipelineRunner().run("not json")

    def test_runner_is_reusable(self, payload, app_config):
        runner = PipelineRunner(app_config)
        assert runner.run(payload).to_dict() == runner.run(payload).to_dict()
