"""
Two-run agreement scoring.

Pairs each schedule from the first extraction run with its most
similar unclaimed schedule from the second run (greedy, in run-1
order) and turns the similarity into a confidence score and a review
flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from revsched.core.config.models import ReconcileConfig
from revsched.core.logging import get_logger
from revsched.core.normalize.canonical import CanonicalSchedule

from .similarity import clamp01, schedule_similarity

logger = get_logger("reconcile")

REQUIRED_FIELDS = ("item_name", "total_price", "start_date", "frequency_unit", "periods")


@dataclass(frozen=True)
class ItemAgreement:
    """Agreement of one run-1 schedule with its best run-2 counterpart."""

    confidence: float
    flag_for_review: bool
    matched_index: int | None  # None when nothing in run 2 matched
    similarity: float
    fields: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched_index_in_run2": "unmatched" if self.matched_index is None else self.matched_index,
            "similarity": self.similarity,
            "fields": dict(self.fields),
        }

    def to_annotation(self) -> dict[str, Any]:
        """Keys merged into a canonical schedule's output."""
        return {
            "confidence": self.confidence,
            "flag_for_review": self.flag_for_review,
            "agreement": self.to_dict(),
        }


@dataclass(frozen=True)
class AgreementSummary:
    """Aggregate statistics of one reconciliation."""

    avg_confidence: float | None
    min_confidence: float | None
    total_items_run1: int
    total_items_run2: int
    unmatched_in_run1: int
    unmatched_in_run2: int
    flagged: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg_confidence": self.avg_confidence,
            "min_confidence": self.min_confidence,
            "total_items_run1": self.total_items_run1,
            "total_items_run2": self.total_items_run2,
            "unmatched_in_run1": self.unmatched_in_run1,
            "unmatched_in_run2": self.unmatched_in_run2,
            "flagged": self.flagged,
        }


@dataclass
class AgreementReport:
    """Per-item agreements (aligned with run 1) and their summary."""

    items: list[ItemAgreement]
    summary: AgreementSummary

    def apply(self, schedules: Sequence[CanonicalSchedule]) -> list[CanonicalSchedule]:
        """Return run-1 schedules annotated with their agreement."""
        return [s.with_agreement(item) for s, item in zip(schedules, self.items)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_annotation() for item in self.items],
            "summary": self.summary.to_dict(),
        }


def _as_record(schedule: CanonicalSchedule | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(schedule, CanonicalSchedule):
        return schedule.to_dict()
    return schedule


def key_completeness_penalty(record: CanonicalSchedule | Mapping[str, Any]) -> float:
    """``1 - 0.5 * missing/5`` over the required fields."""
    record = _as_record(record)
    missing = sum(1 for key in REQUIRED_FIELDS if record.get(key) is None or record.get(key) == "")
    return clamp01(1 - (missing / len(REQUIRED_FIELDS)) * 0.5)


def compute_agreement(
    first: Sequence[CanonicalSchedule | Mapping[str, Any]],
    second: Sequence[CanonicalSchedule | Mapping[str, Any]],
    config: ReconcileConfig | None = None,
) -> AgreementReport:
    """Score agreement between two independently normalized runs.

    Assignment is greedy: once a run-2 index is claimed, later run-1
    items cannot use it. An item whose best similarity is 0 stays
    unmatched.
    """
    config = config or ReconcileConfig()
    left = [_as_record(s) for s in first]
    right = [_as_record(s) for s in second]

    claimed: set[int] = set()
    items: list[ItemAgreement] = []

    for record in left:
        best_index: int | None = None
        best_similarity = 0.0
        best_fields: dict[str, float] = {}

        for j, other in enumerate(right):
            if j in claimed:
                continue
            similarity, fields = schedule_similarity(record, other, config.weights)
            if similarity > best_similarity:
                best_index, best_similarity, best_fields = j, similarity, fields

        if best_index is not None:
            claimed.add(best_index)

        confidence = clamp01(0.2 + 0.8 * best_similarity * key_completeness_penalty(record))
        flag = confidence < config.review_confidence or best_similarity < config.review_similarity
        items.append(ItemAgreement(
            confidence=confidence,
            flag_for_review=flag,
            matched_index=best_index,
            similarity=best_similarity,
            fields=best_fields,
        ))

    confidences = [item.confidence for item in items]
    summary = AgreementSummary(
        avg_confidence=sum(confidences) / len(confidences) if confidences else None,
        min_confidence=min(confidences) if confidences else None,
        total_items_run1=len(left),
        total_items_run2=len(right),
        unmatched_in_run1=sum(1 for item in items if item.matched_index is None),
        unmatched_in_run2=len(right) - len(claimed),
        flagged=sum(1 for item in items if item.flag_for_review),
    )

    logger.info(
        "Agreement: %d/%d items matched, %d flagged, avg confidence %s",
        len(claimed),
        len(left),
        summary.flagged,
        f"{summary.avg_confidence:.3f}" if summary.avg_confidence is not None else "n/a",
    )
    return AgreementReport(items=items, summary=summary)


def apply_agreement(
    first: Sequence[CanonicalSchedule],
    second: Sequence[CanonicalSchedule | Mapping[str, Any]],
    config: ReconcileConfig | None = None,
) -> tuple[list[CanonicalSchedule], AgreementSummary]:
    """Annotate run-1 schedules with agreement against run 2."""
    report = compute_agreement(first, second, config)
    return report.apply(first), report.summary
