"""
Canonical schedule model for normalized data.

Provides the trusted, policy-normalized representation of one billing
line. Records are immutable; annotations (integration match, agreement
score) produce new records via ``dataclasses.replace``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Mapping

from revsched.core.config.models import BillingTiming, BillingType, FrequencyUnit, NormalizeConfig

from .enums import Frequency, normalize_billing_type, normalize_frequency
from .frequency import ServiceTerm, derive_months_of_service, end_date_of, periods_from_months
from .parsing import (
    clamp_enum,
    clean_number,
    is_blank,
    iso_date,
    optional_text,
    parse_flag,
    pick_number,
    positive,
    round_half_up,
    to_number,
)
from .policy import TIER_WITHOUT_TIERS_ISSUE, UNIT_WITHOUT_EVIDENCE_ISSUE, apply_demotion_policy
from .pricing import MISSING_PRICE_ISSUE, ZERO_PRICE_ISSUE, ContextWindowScorer, PriceResolver

if TYPE_CHECKING:
    from revsched.core.integration.matching import IntegrationMatch
    from revsched.core.reconcile.agreement import ItemAgreement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tier:
    """A usage threshold with its price."""

    tier_name: str | None = None
    price: float | None = None
    applied_when: str | None = None
    min_quantity: float | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Tier":
        return cls(
            tier_name=optional_text(raw.get("tier_name") or raw.get("name")),
            price=to_number(raw.get("price")),
            applied_when=optional_text(raw.get("applied_when")),
            min_quantity=to_number(raw.get("min_quantity")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier_name": self.tier_name,
            "price": clean_number(self.price),
            "applied_when": self.applied_when,
            "min_quantity": clean_number(self.min_quantity),
        }


@dataclass(frozen=True)
class Evidence:
    """A quoted passage supporting an extracted value."""

    snippet: str
    page: int | None = None
    field_supported: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "Evidence | None":
        if isinstance(raw, str):
            text = optional_text(raw)
            return cls(snippet=text) if text else None
        if not isinstance(raw, Mapping):
            return None
        snippet = optional_text(raw.get("snippet") or raw.get("text") or raw.get("quote"))
        if not snippet:
            return None
        page = pick_number(raw.get("page"))
        return cls(
            snippet=snippet,
            page=int(page) if page is not None else None,
            field_supported=optional_text(raw.get("field_supported")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"page": self.page, "snippet": self.snippet, "field_supported": self.field_supported}


@dataclass(frozen=True)
class CanonicalSchedule:
    """Policy-normalized billing schedule.

    Invariants (enforced by the normalizer):
    - ``total_price`` is None or >= 0
    - ``quantity`` is 1 for Flat price
    - ``tiers`` is empty unless the billing type is a tier type
    - ``frequency_every`` is 1 and ``periods`` is 0 for a None unit
    - ``arrears`` is True exactly when ``billing_timing`` is ``last``
    """

    item_name: str = ""
    billing_type: BillingType = BillingType.FLAT_PRICE
    total_price: float | None = None
    quantity: float | None = 1
    start_date: str | None = None

    frequency_unit: FrequencyUnit = FrequencyUnit.NONE
    frequency_every: int = 1
    months_of_service: float | None = None
    periods: int = 0
    calculated_end_date: str | None = None

    net_terms: int = 0
    billing_timing: BillingTiming = BillingTiming.FIRST
    arrears: bool = False

    schedule_label: str | None = None
    description: str | None = None
    rev_rec_category: str | None = None
    extraction_reasoning: str | None = None

    # Usage pricing
    event_to_track: str | None = None
    unit_label: str | None = None
    price_per_unit: float | None = None
    volume_based: bool | None = None
    tiers: tuple[Tier, ...] = ()

    evidence: tuple[Evidence, ...] = ()
    issues: tuple[str, ...] = ()

    # Annotations
    integration: "IntegrationMatch | None" = field(default=None, compare=False)
    agreement: "ItemAgreement | None" = field(default=None, compare=False)

    def with_issue(self, message: str) -> "CanonicalSchedule":
        """Return a copy with one more issue recorded."""
        return replace(self, issues=self.issues + (message,))

    def with_integration(self, match: "IntegrationMatch") -> "CanonicalSchedule":
        return replace(self, integration=match)

    def with_agreement(self, item: "ItemAgreement") -> "CanonicalSchedule":
        return replace(self, agreement=item)

    @property
    def is_one_time(self) -> bool:
        return self.frequency_unit is FrequencyUnit.NONE

    @property
    def integration_item(self) -> str | None:
        return self.integration.integration_item if self.integration else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary (enum values as strings)."""
        data: dict[str, Any] = {
            "schedule_label": self.schedule_label,
            "item_name": self.item_name,
            "description": self.description,
            "billing_type": self.billing_type.value,
            "total_price": clean_number(self.total_price),
            "quantity": clean_number(self.quantity),
            "start_date": self.start_date,
            "frequency_every": self.frequency_every,
            "frequency_unit": self.frequency_unit.value,
            "months_of_service": clean_number(self.months_of_service),
            "periods": self.periods,
            "calculated_end_date": self.calculated_end_date,
            "net_terms": self.net_terms,
            "rev_rec_category": self.rev_rec_category,
            "billing_timing": self.billing_timing.value,
            "arrears": self.arrears,
            "event_to_track": self.event_to_track,
            "unit_label": self.unit_label,
            "price_per_unit": clean_number(self.price_per_unit),
            "volume_based": self.volume_based,
            "tiers": [t.to_dict() for t in self.tiers],
            "evidence": [e.to_dict() for e in self.evidence],
            "extraction_reasoning": self.extraction_reasoning,
            "issues": list(self.issues),
        }

        if self.integration is not None:
            data.update(self.integration.to_annotation())

        if self.agreement is not None:
            data.update(self.agreement.to_annotation())

        return data


# =============================================================================
# Normalization
# =============================================================================


class ScheduleNormalizer:
    """Turns untrusted candidate records into canonical schedules.

    Resolution order: billing type and frequency, quantity, billing
    timing, service term and periods, price, then the demotion policy.
    Every automatic correction appends one issue to the record.
    """

    def __init__(self, config: NormalizeConfig | None = None, resolver: PriceResolver | None = None):
        self.config = config or NormalizeConfig()
        self.resolver = resolver or PriceResolver(
            scorer=ContextWindowScorer(window=self.config.evidence_window)
        )

    def normalize(self, candidate: Any) -> CanonicalSchedule:
        issues: list[str] = []
        if isinstance(candidate, Mapping):
            raw: Mapping[str, Any] = candidate
        else:
            raw = {}
            issues.append("Candidate was not an object; all fields defaulted.")

        caller_issues = raw.get("issues")
        if isinstance(caller_issues, (list, tuple)):
            issues[:0] = [str(i) for i in caller_issues if not is_blank(i)]

        billing_type = self._billing_type(raw, issues)
        frequency = self._frequency(raw, issues)
        quantity = self._quantity(raw, billing_type, issues)
        timing, arrears = self._timing(raw, issues)
        months, periods = self._term(raw, frequency, issues)
        net_terms = self._net_terms(raw, issues)

        tiers_raw = raw.get("tiers")
        if not isinstance(tiers_raw, (list, tuple)):
            tiers_raw = []
        tiers = tuple(Tier.from_raw(t) for t in tiers_raw if isinstance(t, Mapping))

        evidence_raw = raw.get("evidence")
        if not isinstance(evidence_raw, (list, tuple)):
            evidence_raw = []
        evidence = tuple(e for e in (Evidence.from_raw(x) for x in evidence_raw) if e is not None)
        evidence = evidence[:self.config.evidence_cap]

        start_raw = raw.get("start_date")
        start_date = iso_date(start_raw)
        if start_date is None and not is_blank(start_raw):
            start_date = optional_text(start_raw)
            issues.append(f"Unparsable start date '{start_date}' kept as-is.")
        end_raw = end_date_of(raw)
        end_date = iso_date(end_raw) or optional_text(end_raw)

        schedule = CanonicalSchedule(
            item_name=optional_text(raw.get("item_name")) or "",
            billing_type=billing_type,
            total_price=None,
            quantity=quantity,
            start_date=start_date,
            frequency_unit=frequency.unit,
            frequency_every=frequency.every,
            months_of_service=months,
            periods=periods,
            calculated_end_date=end_date,
            net_terms=net_terms,
            billing_timing=timing,
            arrears=arrears,
            schedule_label=optional_text(raw.get("schedule_label")),
            description=optional_text(raw.get("description")),
            rev_rec_category=optional_text(raw.get("rev_rec_category")),
            extraction_reasoning=optional_text(raw.get("extraction_reasoning")),
            event_to_track=optional_text(raw.get("event_to_track")),
            unit_label=optional_text(raw.get("unit_label")),
            price_per_unit=to_number(raw.get("price_per_unit")),
            volume_based=parse_flag(raw.get("volume_based")),
            tiers=tiers,
            evidence=evidence,
        )

        # Raw candidate first, then the partially normalized record
        resolution = self.resolver.resolve_first(raw, schedule.to_dict())
        negative = to_number(raw.get("total_price"))
        if negative is not None and negative < 0:
            issues.append(f"Ignored negative total price {clean_number(negative)}.")
        if resolution.is_explicit_zero:
            issues.append(ZERO_PRICE_ISSUE)
        elif not resolution.resolved:
            issues.append(MISSING_PRICE_ISSUE)

        schedule = replace(schedule, total_price=resolution.amount, issues=tuple(issues))
        return apply_demotion_policy(schedule, raw)

    # -------------------------------------------------------------------------
    # Field resolution
    # -------------------------------------------------------------------------

    def _billing_type(self, raw: Mapping[str, Any], issues: list[str]) -> BillingType:
        hint_raw = raw.get("billing_type")
        resolved = normalize_billing_type(hint_raw, raw)
        hint = clamp_enum(hint_raw, BillingType, None)

        if hint is None:
            if not is_blank(hint_raw) and not isinstance(hint_raw, BillingType):
                issues.append(f"Unrecognized billing type '{optional_text(hint_raw)}'; resolved to '{resolved.value}'.")
        elif hint is not resolved:
            if hint is BillingType.UNIT_PRICE and resolved is BillingType.FLAT_PRICE:
                issues.append(UNIT_WITHOUT_EVIDENCE_ISSUE)
            elif hint.is_tier and resolved is BillingType.FLAT_PRICE:
                issues.append(TIER_WITHOUT_TIERS_ISSUE)
            else:
                issues.append(
                    f"Billing type corrected from '{hint.value}' to '{resolved.value}' "
                    "based on tier/per-unit evidence."
                )
        return resolved

    def _frequency(self, raw: Mapping[str, Any], issues: list[str]) -> Frequency:
        unit_raw = raw.get("frequency_unit")
        every_raw = raw.get("frequency_every")
        frequency = normalize_frequency(raw.get("frequency"), every_raw, unit_raw)

        if not is_blank(unit_raw) and clamp_enum(unit_raw, FrequencyUnit, None) is None:
            issues.append(
                f"Unrecognized frequency unit '{optional_text(unit_raw)}'; "
                f"resolved to '{frequency.unit.value}'."
            )

        every = to_number(every_raw)
        if frequency.unit is FrequencyUnit.NONE:
            if every is not None and every != 1:
                issues.append(
                    f"Frequency multiplier forced from {clean_number(every)} to 1 for one-time schedule."
                )
        elif not is_blank(every_raw) and frequency.every != every:
            issues.append(
                f"Invalid frequency multiplier '{optional_text(every_raw)}'; using {frequency.every}."
            )
        return frequency

    def _quantity(self, raw: Mapping[str, Any], billing_type: BillingType, issues: list[str]) -> float | None:
        quantity = to_number(raw.get("quantity"))
        if billing_type is not BillingType.FLAT_PRICE:
            return quantity
        if quantity is not None and quantity != 1:
            issues.append(f"Quantity forced from {clean_number(quantity)} to 1 for Flat price.")
        return 1

    def _timing(self, raw: Mapping[str, Any], issues: list[str]) -> tuple[BillingTiming, bool]:
        timing_raw = raw.get("billing_timing")
        timing = clamp_enum(timing_raw, BillingTiming, None)
        if timing is None:
            if not is_blank(timing_raw):
                issues.append(f"Invalid billing timing '{optional_text(timing_raw)}'; defaulted to 'first'.")
            timing = BillingTiming.FIRST

        arrears = parse_flag(raw.get("arrears"))
        if arrears is not None:
            derived = BillingTiming.LAST if arrears else BillingTiming.FIRST
            if derived is not timing and clamp_enum(timing_raw, BillingTiming, None) is not None:
                issues.append(
                    f"Billing timing changed from '{timing.value}' to '{derived.value}' "
                    "to match the explicit arrears flag."
                )
            timing = derived

        return timing, timing is BillingTiming.LAST

    def _term(
        self, raw: Mapping[str, Any], frequency: Frequency, issues: list[str]
    ) -> tuple[float | None, int]:
        explicit = positive(to_number(raw.get("months_of_service")))
        if explicit is not None:
            term = ServiceTerm(months=clean_number(explicit), source="explicit")
        else:
            resolved_view = dict(raw)
            resolved_view["frequency_unit"] = frequency.unit.value
            resolved_view["frequency_every"] = frequency.every
            term = derive_months_of_service(resolved_view)

        months = None if term.source == "default" else term.months
        periods_raw = raw.get("periods")
        supplied = to_number(periods_raw)

        if frequency.unit is FrequencyUnit.NONE:
            if supplied is not None and supplied != 0:
                issues.append(f"Auto-corrected periods from {clean_number(supplied)} to 0 for one-time schedule.")
            return months, 0

        if term.source == "periods" and supplied is not None:
            return months, max(1, round_half_up(supplied))

        expected = periods_from_months(frequency.unit, frequency.every, term.months)
        if supplied is None:
            if not is_blank(periods_raw):
                issues.append(
                    f"Non-numeric periods '{optional_text(periods_raw)}' recomputed as {expected} "
                    f"from {clean_number(term.months)} months."
                )
        elif supplied != expected:
            issues.append(
                f"Auto-corrected periods from {clean_number(supplied)} to {expected} based on "
                f"{clean_number(term.months)} months with {frequency.unit.value} every {frequency.every}."
            )
        return months, expected

    def _net_terms(self, raw: Mapping[str, Any], issues: list[str]) -> int:
        value_raw = raw.get("net_terms")
        value = to_number(value_raw)
        if value is None:
            if not is_blank(value_raw):
                issues.append(f"Non-numeric net terms '{optional_text(value_raw)}'; defaulted to 0.")
            return 0
        if value < 0:
            issues.append(f"Negative net terms {clean_number(value)} replaced with 0.")
            return 0
        return round_half_up(value)


def extract_candidates(data: Any) -> list[Any]:
    """Pull the candidate list out of a payload dict or accept a bare list."""
    if isinstance(data, Mapping):
        data = data.get("schedules")
    if isinstance(data, (list, tuple)):
        return list(data)
    return []


def normalize_schedule(candidate: Any, config: NormalizeConfig | None = None) -> CanonicalSchedule:
    """Normalize one candidate record."""
    return ScheduleNormalizer(config).normalize(candidate)


def normalize_schedules(data: Any, config: NormalizeConfig | None = None) -> list[CanonicalSchedule]:
    """Normalize every candidate in a payload (``{"schedules": [...]}``) or list."""
    normalizer = ScheduleNormalizer(config)
    schedules = [normalizer.normalize(c) for c in extract_candidates(data)]
    logger.debug(
        "Normalized %d schedules (%d with issues)",
        len(schedules),
        sum(1 for s in schedules if s.issues),
    )
    return schedules
