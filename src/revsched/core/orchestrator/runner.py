"""
Extraction pipeline orchestrator.

Coordinates the full workflow for one contract:
parse payload → normalize → reconcile → match integration codes →
project → apply merchant guidance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

import orjson

from revsched.core.config.models import AppConfig, IntegrationPair, MerchantGuidance
from revsched.core.integration.matching import annotate_schedules
from revsched.core.logging import get_contextual_logger
from revsched.core.normalize.canonical import CanonicalSchedule, ScheduleNormalizer, extract_candidates
from revsched.core.normalize.parsing import is_blank, to_number
from revsched.core.project.garage import to_garage_all
from revsched.core.project.guidance import apply_guidance
from revsched.core.reconcile.agreement import AgreementSummary, compute_agreement


class PayloadError(Exception):
    """Raised when an extraction payload is not parseable JSON."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.message = message
        self.raw = raw

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Payload Parsing
# =============================================================================


@dataclass
class ExtractionPayload:
    """Top-level structure returned by the extraction service."""

    schedules: list[Any] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    totals_check: dict[str, Any] | None = None
    model_recommendations: dict[str, Any] | None = None

    @classmethod
    def from_data(cls, data: Any) -> "ExtractionPayload":
        """Build from a decoded payload dict or a bare schedule list."""
        if not isinstance(data, Mapping):
            return cls(schedules=extract_candidates(data))

        issues = data.get("issues")
        totals = data.get("totals_check")
        recommendations = data.get("model_recommendations")
        return cls(
            schedules=extract_candidates(data),
            issues=[str(i) for i in issues if not is_blank(i)] if isinstance(issues, list) else [],
            totals_check=dict(totals) if isinstance(totals, Mapping) else None,
            model_recommendations=dict(recommendations) if isinstance(recommendations, Mapping) else None,
        )


def parse_extraction_payload(raw: str | bytes | Mapping[str, Any] | list[Any]) -> ExtractionPayload:
    """Parse raw extraction output.

    Text that is not valid JSON is retried on the slice between the
    first ``{`` and the last ``}``, which strips prose or code fences
    around the object.

    Raises:
        PayloadError: If neither attempt yields JSON
    """
    if isinstance(raw, (Mapping, list)):
        return ExtractionPayload.from_data(raw)

    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    try:
        return ExtractionPayload.from_data(orjson.loads(text))
    except orjson.JSONDecodeError:
        pass

    start, end = text.find("{"), text.rfind("}")
    if start < 0 or end <= start:
        raise PayloadError("Could not parse extraction payload: no JSON object found", raw=text)
    try:
        return ExtractionPayload.from_data(orjson.loads(text[start:end + 1]))
    except orjson.JSONDecodeError as e:
        raise PayloadError(f"Could not parse extraction payload: {e}", raw=text) from e


# =============================================================================
# Rerun Decision
# =============================================================================


@dataclass(frozen=True)
class RerunDecision:
    """Whether a second extraction run is advised, and what to focus on."""

    missing_name: bool = False
    all_totals_zero: bool = False
    missing_start_date: bool = False

    @property
    def rerun(self) -> bool:
        return self.missing_name or self.all_totals_zero or self.missing_start_date

    @property
    def hints(self) -> list[str]:
        """Focus lines appended to the extraction prompt on retry."""
        lines: list[str] = []
        if self.missing_name:
            lines.append("A non-empty item_name")
        if self.all_totals_zero:
            lines.append("A non-zero total_price (unless explicitly free/waived)")
        if self.missing_start_date:
            lines.append(
                "A valid start_date in YYYY-MM-DD format (check effective date, service start "
                "date, contract date and signature date)"
            )
        return lines

    def hint_text(self) -> str:
        if not self.rerun:
            return ""
        body = "".join(f"- {line}\n" for line in self.hints)
        return (
            "RETRY FOCUS: Ensure every schedule has:\n"
            f"{body}\n"
            "Prefer amounts matching schedule frequency or a clearly labeled line total."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rerun": self.rerun,
            "missing_name": self.missing_name,
            "all_totals_zero": self.all_totals_zero,
            "missing_start_date": self.missing_start_date,
            "hints": self.hints,
            "hint_text": self.hint_text(),
        }


def decide_rerun(schedules: Sequence[CanonicalSchedule]) -> RerunDecision:
    """Advise a rerun when a name is blank, every total is 0, or a start date is missing."""
    return RerunDecision(
        missing_name=any(is_blank(s.item_name) for s in schedules),
        all_totals_zero=bool(schedules) and all(to_number(s.total_price) == 0 for s in schedules),
        missing_start_date=any(is_blank(s.start_date) for s in schedules),
    )


# =============================================================================
# Pipeline
# =============================================================================


@dataclass
class PipelineResult:
    """Everything produced for one contract."""

    schedules: list[CanonicalSchedule]
    garage: list[dict[str, Any]]
    rerun: RerunDecision
    agreement: AgreementSummary | None = None
    payload_issues: list[str] = field(default_factory=list)
    totals_check: dict[str, Any] | None = None
    model_recommendations: dict[str, Any] | None = None

    @property
    def flagged(self) -> list[CanonicalSchedule]:
        return [s for s in self.schedules if s.agreement is not None and s.agreement.flag_for_review]

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedules": [s.to_dict() for s in self.schedules],
            "garage": self.garage,
            "agreement": self.agreement.to_dict() if self.agreement else None,
            "rerun": self.rerun.to_dict(),
            "issues": self.payload_issues,
            "totals_check": self.totals_check,
            "model_recommendations": self.model_recommendations,
        }


def _as_payload(data: Any) -> ExtractionPayload:
    if isinstance(data, ExtractionPayload):
        return data
    return parse_extraction_payload(data)


class PipelineRunner:
    """Runs the normalization pipeline for extraction payloads.

    Holds only read-only configuration, so one runner can serve many
    contracts concurrently.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self.normalizer = ScheduleNormalizer(self.config.normalize)

    def run(
        self,
        run1: Any,
        run2: Any = None,
        guidance: MerchantGuidance | None = None,
        pairs: Iterable[IntegrationPair | Sequence[Any]] = (),
        contract_id: str | None = None,
    ) -> PipelineResult:
        """Process one or two extraction runs for a contract.

        Args:
            run1: First payload (JSON text, decoded dict or schedule list)
            run2: Optional independent second payload for agreement scoring
            guidance: Merchant guidance applied to the external records
            pairs: Integration (contract name, external code) pairs
            contract_id: Identifier used in log context

        Returns:
            PipelineResult

        Raises:
            PayloadError: If a payload is unparseable text
        """
        log = get_contextual_logger("pipeline", contract_id=contract_id, run=1)

        first = _as_payload(run1)
        schedules = [self.normalizer.normalize(c) for c in first.schedules]
        log.info("Normalized %d schedules", len(schedules))

        rerun = decide_rerun(schedules)
        if rerun.rerun:
            log.info("Rerun advised: %s", "; ".join(rerun.hints))
            log.debug(rerun.hint_text())

        summary: AgreementSummary | None = None
        if run2 is not None:
            second = _as_payload(run2)
            others = [self.normalizer.normalize(c) for c in second.schedules]
            report = compute_agreement(schedules, others, self.config.reconcile)
            schedules = report.apply(schedules)
            summary = report.summary
            log.with_context(run=2).info(
                "Reconciled against %d schedules, %d flagged", len(others), summary.flagged
            )

        pair_list = list(pairs)
        if pair_list:
            schedules = annotate_schedules(schedules, pair_list, self.config.matching)

        garage = apply_guidance(to_garage_all(schedules), guidance)

        return PipelineResult(
            schedules=schedules,
            garage=garage,
            rerun=rerun,
            agreement=summary,
            payload_issues=first.issues,
            totals_check=first.totals_check,
            model_recommendations=first.model_recommendations,
        )


def process_extraction(
    run1: Any,
    run2: Any = None,
    guidance: MerchantGuidance | None = None,
    pairs: Iterable[IntegrationPair | Sequence[Any]] = (),
    config: AppConfig | None = None,
    contract_id: str | None = None,
) -> PipelineResult:
    """Convenience wrapper around ``PipelineRunner.run``."""
    return PipelineRunner(config).run(run1, run2, guidance, pairs, contract_id=contract_id)
