"""
Price resolution with an ordered fallback chain.

A schedule's price is taken from, in order:

1. Structured price fields (first strictly positive value wins)
2. Currency amounts quoted in evidence, description or item name,
   ranked by a pluggable context scorer
3. An explicit zero signal (0 field, "$0", free/waived/complimentary)

Nothing is ever invented: when all three fail the price is None.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from revsched.core.config.models import BillingType, FrequencyUnit
from revsched.core.config.synonyms import (
    ANNUAL_CONTEXT,
    CURRENCY_AMOUNT_PATTERN,
    FULL_DISCOUNT_PATTERN,
    MONTHLY_CONTEXT,
    NEGATIVE_CONTEXT,
    ONE_TIME_CONTEXT,
    PER_UNIT_CONTEXT,
    PRICE_FIELDS,
    PRICE_FIELDS_PRIMARY,
    PRICE_FIELDS_SECONDARY,
    TOTAL_CONTEXT,
    ZERO_CURRENCY_PATTERN,
    ZERO_TERMS_PATTERN,
)

from .enums import evidence_snippets, normalize_billing_type
from .parsing import clamp_enum, is_blank, positive, to_number

# Characters of context inspected on each side of a price mention
CONTEXT_WINDOW = 48

# Tie-break deducted per position so earlier mentions win close calls
POSITION_STEP = 0.05

ZERO_PRICE_ISSUE = "Explicit zero price accepted (waived/free/included)."
MISSING_PRICE_ISSUE = "Price missing after all fallbacks; verify contract line."


# =============================================================================
# Candidate Scoring
# =============================================================================


@dataclass(frozen=True)
class PriceContext:
    """What the scorer knows about the schedule a price belongs to."""

    frequency_unit: FrequencyUnit | None = None
    billing_type: BillingType = BillingType.FLAT_PRICE


@dataclass(frozen=True)
class PriceCandidate:
    """A currency amount found in free text."""

    value: float
    text: str  # full source text
    start: int  # match span in ``text``
    end: int
    position: int  # order of discovery across all texts


class PriceScorer(ABC):
    """Strategy that ranks currency amounts found in free text."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Scorer identifier."""

    @abstractmethod
    def score(self, candidate: PriceCandidate, context: PriceContext) -> float:
        """Return a score for the candidate; higher wins."""


class ContextWindowScorer(PriceScorer):
    """Score a candidate by keywords in a window of text around it.

    Cadence words matching the schedule's frequency add 3 (and cost 1
    otherwise), "total" language adds 2, discount/credit/tax/deposit
    language costs 4, and per-unit language costs 2 on non-unit
    billing types.
    """

    def __init__(self, window: int = CONTEXT_WINDOW, position_step: float = POSITION_STEP):
        self.window = window
        self.position_step = position_step

    @property
    def name(self) -> str:
        return "context_window"

    def _ring(self, candidate: PriceCandidate) -> str:
        text = candidate.text
        left = text[max(0, candidate.start - self.window):candidate.start]
        right = text[candidate.end:candidate.end + self.window]
        return f"{left} {right}".lower()

    def score(self, candidate: PriceCandidate, context: PriceContext) -> float:
        ring = self._ring(candidate)
        unit = context.frequency_unit
        score = 0.0

        if MONTHLY_CONTEXT.search(ring):
            score += 3 if unit is FrequencyUnit.MONTHS else -1
        if ANNUAL_CONTEXT.search(ring):
            score += 3 if unit is FrequencyUnit.YEARS else -1
        if ONE_TIME_CONTEXT.search(ring):
            score += 3 if unit is FrequencyUnit.NONE else -1
        if TOTAL_CONTEXT.search(ring):
            score += 2
        if NEGATIVE_CONTEXT.search(ring):
            score -= 4
        if PER_UNIT_CONTEXT.search(ring) and not context.billing_type.is_unit:
            score -= 2

        return score - candidate.position * self.position_step


def find_price_candidates(texts: list[str]) -> list[PriceCandidate]:
    """Find every strictly positive currency amount in the given texts."""
    candidates: list[PriceCandidate] = []
    for text in texts:
        if is_blank(text):
            continue
        for match in CURRENCY_AMOUNT_PATTERN.finditer(text):
            value = to_number(match.group(1))
            if value is None or value <= 0:
                continue
            candidates.append(PriceCandidate(
                value=value,
                text=text,
                start=match.start(),
                end=match.end(),
                position=len(candidates),
            ))
    return candidates


def extract_price_from_text(
    texts: list[str],
    context: PriceContext,
    scorer: PriceScorer | None = None,
) -> float | None:
    """Return the best-scoring currency amount in ``texts``, or None."""
    scorer = scorer or ContextWindowScorer()
    best: tuple[float, PriceCandidate] | None = None

    for candidate in find_price_candidates(texts):
        score = scorer.score(candidate, context)
        # Strict comparison keeps the earliest candidate on ties
        if best is None or score > best[0]:
            best = (score, candidate)

    return best[1].value if best else None


# =============================================================================
# Resolution Chain
# =============================================================================


def price_texts(record: Mapping[str, Any]) -> list[str]:
    """Evidence snippets, then description, then item name."""
    texts = evidence_snippets(record)
    for key in ("description", "item_name"):
        value = record.get(key)
        if not is_blank(value):
            texts.append(str(value))
    return texts


def price_from_fields(record: Mapping[str, Any]) -> tuple[float, str] | None:
    """First strictly positive structured price field, with its name."""
    for fields in (PRICE_FIELDS_PRIMARY, PRICE_FIELDS_SECONDARY):
        for name in fields:
            value = positive(to_number(record.get(name)))
            if value is not None:
                return value, name
    return None


def price_context(record: Mapping[str, Any]) -> PriceContext:
    return PriceContext(
        frequency_unit=clamp_enum(record.get("frequency_unit"), FrequencyUnit, None),
        billing_type=normalize_billing_type(record.get("billing_type"), record),
    )


def price_from_evidence(
    record: Mapping[str, Any],
    scorer: PriceScorer | None = None,
) -> float | None:
    return positive(extract_price_from_text(price_texts(record), price_context(record), scorer))


def explicit_zero_signal(record: Mapping[str, Any]) -> str | None:
    """Describe why a record is explicitly free, or None.

    Returns ``field:<name>``, ``currency_text``, ``keyword_text`` or
    ``discount_100``.
    """
    for name in PRICE_FIELDS:
        if to_number(record.get(name)) == 0:
            return f"field:{name}"

    haystack = " ".join(price_texts(record))
    if ZERO_CURRENCY_PATTERN.search(haystack):
        return "currency_text"
    if ZERO_TERMS_PATTERN.search(haystack):
        return "keyword_text"
    if FULL_DISCOUNT_PATTERN.search(haystack):
        return "discount_100"
    return None


@dataclass(frozen=True)
class PriceResolution:
    """Outcome of the price fallback chain."""

    amount: float | None
    source: str | None  # field:<name>, evidence, zero:<reason>

    @property
    def is_explicit_zero(self) -> bool:
        return self.amount == 0

    @property
    def resolved(self) -> bool:
        return self.amount is not None


class PriceResolver:
    """Runs the structured → evidence → explicit-zero chain.

    The evidence step delegates ranking to a ``PriceScorer`` so a
    different heuristic can be swapped in without touching the order.
    """

    def __init__(self, scorer: PriceScorer | None = None, allow_explicit_zero: bool = True):
        self.scorer = scorer or ContextWindowScorer()
        self.allow_explicit_zero = allow_explicit_zero

    def resolve(self, record: Mapping[str, Any]) -> PriceResolution:
        from_fields = price_from_fields(record)
        if from_fields is not None:
            return PriceResolution(amount=from_fields[0], source=f"field:{from_fields[1]}")

        from_text = price_from_evidence(record, self.scorer)
        if from_text is not None:
            return PriceResolution(amount=from_text, source="evidence")

        if self.allow_explicit_zero:
            reason = explicit_zero_signal(record)
            if reason:
                return PriceResolution(amount=0.0, source=f"zero:{reason}")

        return PriceResolution(amount=None, source=None)

    def resolve_first(self, *records: Mapping[str, Any]) -> PriceResolution:
        """Resolve against each record in turn; the first resolved price wins."""
        resolution = PriceResolution(amount=None, source=None)
        for record in records:
            resolution = self.resolve(record)
            if resolution.resolved:
                return resolution
        return resolution


def best_price(record: Mapping[str, Any], allow_explicit_zero: bool = True) -> float | None:
    """Convenience wrapper returning just the resolved amount."""
    return PriceResolver(allow_explicit_zero=allow_explicit_zero).resolve(record).amount
