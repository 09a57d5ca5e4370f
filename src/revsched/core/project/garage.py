"""
Projection of canonical schedules into the billing system's wire schema.

The external ("garage") record is built fresh from a canonical one and
never modified afterwards. Vocabulary differs from the canonical
enums: billing types are upper snake case, weeks become 7-day DAYS
periods and a 3-month cadence becomes QUARTER.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Sequence

from revsched.core.config.models import (
    BillingType,
    FrequencyUnit,
    GarageBillingType,
    GarageFrequencyUnit,
)
from revsched.core.config.synonyms import (
    ONE_TIME_DEFAULT_DESCRIPTION,
    ONE_TIME_DEFAULT_NAME,
    ONE_TIME_TEXT_PATTERN,
)
from revsched.core.normalize.canonical import CanonicalSchedule
from revsched.core.normalize.frequency import derive_months_of_service, periods_from_months
from revsched.core.normalize.parsing import (
    clamp_enum,
    clean_number,
    join_text,
    pick_number,
    positive,
    to_number,
)
from revsched.core.normalize.pricing import PriceResolver, explicit_zero_signal

GARAGE_BILLING_TYPES: dict[BillingType, GarageBillingType] = {
    BillingType.FLAT_PRICE: GarageBillingType.FLAT_PRICE,
    BillingType.UNIT_PRICE: GarageBillingType.UNIT_PRICE,
    BillingType.TIER_FLAT_PRICE: GarageBillingType.TIER_FLAT_PRICE,
    BillingType.TIER_UNIT_PRICE: GarageBillingType.TIER_UNIT_PRICE,
}

CONDITION_GREATER_THAN_EQUAL = "GREATER_THAN_EQUAL"


@dataclass(frozen=True)
class GarageTier:
    tier: int
    mantissa: str | None
    exponent: str = "0"
    condition_value: float | None = None
    condition_operator: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "mantissa": self.mantissa,
            "exponent": self.exponent,
            "condition_value": clean_number(self.condition_value),
            "condition_operator": self.condition_operator,
            "name": self.name,
        }


@dataclass(frozen=True)
class GarageFrequency:
    frequency_unit: GarageFrequencyUnit
    period: int
    number_of_periods: int


@dataclass(frozen=True)
class GarageSchedule:
    """A schedule in the billing system's schema."""

    service_start_date: str
    service_term: float
    revenue_category: str | None
    item_name: str
    item_description: str | None
    start_date: str
    frequency_unit: GarageFrequencyUnit
    period: int
    number_of_periods: int
    arrears: bool
    billing_type: GarageBillingType
    event_to_track: str | None
    integration_item: str | None
    net_terms: int
    quantity: float
    total_price: float | None
    pricing_tiers: tuple[GarageTier, ...] = ()
    discounts: tuple[Any, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_start_date": self.service_start_date,
            "service_term": clean_number(self.service_term),
            "revenue_category": self.revenue_category,
            "item_name": self.item_name,
            "item_description": self.item_description,
            "start_date": self.start_date,
            "frequency_unit": self.frequency_unit.value,
            "period": self.period,
            "number_of_periods": self.number_of_periods,
            "arrears": self.arrears,
            "billing_type": self.billing_type.value,
            "event_to_track": self.event_to_track,
            "integration_item": self.integration_item,
            "discounts": list(self.discounts),
            "net_terms": self.net_terms,
            "quantity": clean_number(self.quantity),
            "total_price": clean_number(self.total_price),
            "pricing_tiers": [t.to_dict() for t in self.pricing_tiers],
        }


def to_garage_billing_type(value: Any) -> GarageBillingType:
    billing_type = clamp_enum(value, BillingType, BillingType.FLAT_PRICE)
    return GARAGE_BILLING_TYPES[billing_type]


def to_garage_frequency(unit: Any, every: Any, months: Any) -> GarageFrequency:
    """Re-enumerate a cadence and count its periods over ``months``."""
    freq = clamp_enum(unit, FrequencyUnit, FrequencyUnit.NONE)
    every = int(pick_number(every, 1))
    if freq is FrequencyUnit.NONE:
        return GarageFrequency(GarageFrequencyUnit.NONE, period=1, number_of_periods=0)

    periods = periods_from_months(freq, every, months)
    if freq is FrequencyUnit.MONTHS:
        if every == 3:
            return GarageFrequency(GarageFrequencyUnit.QUARTER, period=1, number_of_periods=periods)
        return GarageFrequency(GarageFrequencyUnit.MONTH, period=every, number_of_periods=periods)
    if freq is FrequencyUnit.YEARS:
        return GarageFrequency(GarageFrequencyUnit.YEAR, period=every, number_of_periods=periods)
    if freq is FrequencyUnit.DAYS:
        return GarageFrequency(GarageFrequencyUnit.DAYS, period=every, number_of_periods=periods)
    if freq is FrequencyUnit.SEMI_MONTHS:
        return GarageFrequency(GarageFrequencyUnit.SEMI_MONTH, period=every, number_of_periods=periods)
    # Week(s)
    return GarageFrequency(GarageFrequencyUnit.DAYS, period=every * 7, number_of_periods=periods)


def _mantissa(price: Any) -> str | None:
    if price is None:
        return None
    return str(clean_number(pick_number(price, 0)))


def to_garage_tiers(tiers: Sequence[Mapping[str, Any]]) -> tuple[GarageTier, ...]:
    result = []
    for i, tier in enumerate(tiers, start=1):
        threshold = to_number(tier.get("min_quantity"))
        result.append(GarageTier(
            tier=i,
            mantissa=_mantissa(tier.get("price")),
            condition_value=threshold,
            condition_operator=CONDITION_GREATER_THAN_EQUAL if threshold is not None else None,
            name=tier.get("tier_name") or tier.get("applied_when") or None,
        ))
    return tuple(result)


def garage_price(record: Mapping[str, Any], resolver: PriceResolver | None = None) -> float | None:
    """Positive total, else an explicit zero, else the fallback chain."""
    total = to_number(record.get("total_price"))
    if positive(total) is not None:
        return total
    if total == 0 and explicit_zero_signal(record):
        return 0.0
    return (resolver or PriceResolver()).resolve(record).amount


def is_one_time(record: Mapping[str, Any], frequency_unit: GarageFrequencyUnit) -> bool:
    text = join_text([
        record.get("schedule_label"),
        record.get("item_name"),
        record.get("description"),
        record.get("rev_rec_category"),
    ])
    return frequency_unit is GarageFrequencyUnit.NONE or bool(ONE_TIME_TEXT_PATTERN.search(text))


def polish_one_time(record: Mapping[str, Any], garage: GarageSchedule) -> GarageSchedule:
    """Default the name and description of one-time items when missing."""
    if not is_one_time(record, garage.frequency_unit):
        return garage
    return replace(
        garage,
        item_name=garage.item_name or ONE_TIME_DEFAULT_NAME,
        item_description=garage.item_description or ONE_TIME_DEFAULT_DESCRIPTION,
    )


def to_garage_schedule(
    schedule: CanonicalSchedule | Mapping[str, Any],
    resolver: PriceResolver | None = None,
) -> GarageSchedule:
    """Project one canonical schedule into the external schema.

    The service term is recomputed from dates, then the explicit term,
    then periods, so it may disagree with the canonical duration.
    """
    record = schedule.to_dict() if isinstance(schedule, CanonicalSchedule) else schedule

    service_term = derive_months_of_service(record).months
    frequency = to_garage_frequency(record.get("frequency_unit"), record.get("frequency_every"), service_term)
    billing_type = to_garage_billing_type(record.get("billing_type"))
    quantity = 1 if billing_type is GarageBillingType.FLAT_PRICE else pick_number(record.get("quantity"), 1)
    tiers = record.get("tiers") or []
    start_date = record.get("start_date") or ""

    garage = GarageSchedule(
        service_start_date=start_date,
        service_term=service_term,
        revenue_category=record.get("rev_rec_category"),
        item_name=record.get("item_name") or "",
        item_description=record.get("description") or None,
        start_date=start_date,
        frequency_unit=frequency.frequency_unit,
        period=frequency.period,
        number_of_periods=frequency.number_of_periods,
        arrears=bool(record.get("arrears")),
        billing_type=billing_type,
        event_to_track=record.get("event_to_track"),
        integration_item=record.get("integration_item"),
        net_terms=int(pick_number(record.get("net_terms"), 0)),
        quantity=quantity,
        total_price=garage_price(record, resolver),
        pricing_tiers=to_garage_tiers([t for t in tiers if isinstance(t, Mapping)]),
    )
    return polish_one_time(record, garage)


def to_garage_all(schedules: Sequence[CanonicalSchedule | Mapping[str, Any]]) -> list[GarageSchedule]:
    resolver = PriceResolver()
    return [to_garage_schedule(s, resolver) for s in schedules or []]
