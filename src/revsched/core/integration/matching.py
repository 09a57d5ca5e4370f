"""
Fuzzy matching of item names against a merchant's integration codes.

Uses thefuzz's weighted ratio. The 0-100 ratio is mapped onto a
non-positive score (0 is a perfect match, each ratio point below 100
costs 250) so the confidence bands read as distances from an exact
match. With the default bands a ratio of 60 or less scores -10000 or
below and yields no code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from thefuzz import fuzz, process

from revsched.core.config.models import IntegrationPair, MatchConfidence, MatchingConfig
from revsched.core.logging import get_logger
from revsched.core.normalize.canonical import CanonicalSchedule
from revsched.core.normalize.parsing import is_blank

logger = get_logger("integration")

# Score cost per ratio point below a perfect match
SCORE_PER_POINT = 250


@dataclass(frozen=True)
class IntegrationMatch:
    """Best integration code for an item name."""

    integration_item: str | None
    confidence: MatchConfidence
    score: float
    matched_name: str | None = None

    @classmethod
    def no_match(cls) -> "IntegrationMatch":
        return cls(integration_item=None, confidence=MatchConfidence.NONE, score=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "integration_item": self.integration_item,
            "match_confidence": self.confidence.value,
            "match_score": self.score,
            "matched_contract_name": self.matched_name,
        }

    def to_annotation(self) -> dict[str, Any]:
        """Keys merged into a canonical schedule's output."""
        return {
            "integration_item": self.integration_item,
            "integration_match_confidence": self.confidence.value,
            "integration_match_score": self.score,
            "integration_matched_name": self.matched_name,
        }


def ratio_to_score(ratio: float) -> float:
    return (ratio - 100) * SCORE_PER_POINT


def confidence_for_score(score: float, config: MatchingConfig | None = None) -> MatchConfidence:
    config = config or MatchingConfig()
    if score > config.high_above:
        return MatchConfidence.HIGH
    if score > config.medium_above:
        return MatchConfidence.MEDIUM
    if score > config.low_above:
        return MatchConfidence.LOW
    return MatchConfidence.NONE


def _coerce_pairs(pairs: Iterable[IntegrationPair | Sequence[Any]]) -> list[IntegrationPair]:
    return [p if isinstance(p, IntegrationPair) else IntegrationPair.model_validate(p) for p in pairs]


def match_integration_item(
    item_name: Any,
    pairs: Iterable[IntegrationPair | Sequence[Any]],
    config: MatchingConfig | None = None,
) -> IntegrationMatch:
    """Find the external code whose contract name best matches ``item_name``.

    Args:
        item_name: Extracted item name
        pairs: (contract name, external code) pairs
        config: Confidence thresholds

    Returns:
        IntegrationMatch; ``none`` confidence with a null code when the
        name is empty, there are no pairs, or nothing scores
    """
    pair_list = _coerce_pairs(pairs)
    if is_blank(item_name) or not pair_list:
        return IntegrationMatch.no_match()

    choices = [p.as_tuple() for p in pair_list]
    names = [name for name, _ in choices]
    result = process.extractOne(str(item_name), names, scorer=fuzz.WRatio)
    if not result or result[1] <= 0:
        return IntegrationMatch.no_match()

    matched_name, ratio = result[0], result[1]
    score = ratio_to_score(ratio)
    confidence = confidence_for_score(score, config)
    # First pair wins when contract names repeat
    code = next(code for name, code in choices if name == matched_name)

    logger.debug("Matched %r -> %r (%s, score %s)", item_name, matched_name, confidence.value, score)
    return IntegrationMatch(
        integration_item=code if confidence is not MatchConfidence.NONE else None,
        confidence=confidence,
        score=score,
        matched_name=matched_name,
    )


def annotate_schedules(
    schedules: Sequence[CanonicalSchedule],
    pairs: Iterable[IntegrationPair | Sequence[Any]],
    config: MatchingConfig | None = None,
) -> list[CanonicalSchedule]:
    """Return schedules annotated with their integration match."""
    pair_list = _coerce_pairs(pairs)
    return [s.with_integration(match_integration_item(s.item_name, pair_list, config)) for s in schedules]
