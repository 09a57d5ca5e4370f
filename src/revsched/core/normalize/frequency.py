"""
Frequency and service-term arithmetic.

Converts between (frequency unit, multiplier, months of service) and a
billing period count. Week, semi-month and day conversions go through
a 30-day month.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from revsched.core.config.models import FrequencyUnit

from .parsing import clamp_enum, pick_number, round_half_up, to_date, to_number

DAYS_PER_MONTH = 30


def periods_from_months(unit: FrequencyUnit | str | None, every: Any, months: Any) -> int:
    """Number of billing periods covering ``months`` of service.

    Always 0 for a None unit and at least 1 otherwise.
    """
    freq = clamp_enum(unit, FrequencyUnit, FrequencyUnit.NONE)
    if freq is FrequencyUnit.NONE:
        return 0

    m = to_number(months)
    e = to_number(every) or 1
    if e <= 0:
        e = 1
    if m is None or m <= 0:
        return 1

    if freq is FrequencyUnit.MONTHS:
        periods = m / e
    elif freq is FrequencyUnit.YEARS:
        periods = m / (12 * e)
    elif freq is FrequencyUnit.WEEKS:
        periods = (m * DAYS_PER_MONTH) / (7 * e)
    elif freq is FrequencyUnit.DAYS:
        periods = (e * m) / (DAYS_PER_MONTH * e)
    elif freq is FrequencyUnit.SEMI_MONTHS:
        periods = (m * DAYS_PER_MONTH) / (15 * e)
    else:
        return 1

    return max(1, round_half_up(periods))


def months_from_periods(unit: FrequencyUnit | str | None, every: Any, periods: Any) -> int | None:
    """Back-calculate months of service from a period count (inverse of ``periods_from_months``)."""
    freq = clamp_enum(unit, FrequencyUnit, FrequencyUnit.NONE)
    p = to_number(periods)
    e = to_number(every) or 1
    if e <= 0:
        e = 1
    if freq is FrequencyUnit.NONE or p is None or p <= 0:
        return None

    if freq is FrequencyUnit.MONTHS:
        months = e * p
    elif freq is FrequencyUnit.YEARS:
        months = 12 * e * p
    elif freq is FrequencyUnit.WEEKS:
        months = (7 * e * p) / DAYS_PER_MONTH
    elif freq is FrequencyUnit.DAYS:
        months = (DAYS_PER_MONTH * e * p) / e
    elif freq is FrequencyUnit.SEMI_MONTHS:
        months = (15 * e * p) / DAYS_PER_MONTH
    else:
        return None

    result = round_half_up(months)
    return result if result > 0 else None


def months_from_dates(start: Any, end: Any) -> int | None:
    """Whole months between two dates (30-day months, minimum 1).

    Returns None when either date is missing or unparsable, or the
    range is empty or reversed.
    """
    start_date = to_date(start)
    end_date = to_date(end)
    if start_date is None or end_date is None:
        return None

    days = (end_date - start_date).days
    if days <= 0:
        return None
    return max(1, round_half_up(days / DAYS_PER_MONTH))


@dataclass(frozen=True)
class ServiceTerm:
    """Derived months of service and where the number came from."""

    months: int | float
    source: str  # dates, explicit, periods, default


def end_date_of(record: Mapping[str, Any]) -> Any:
    return record.get("calculated_end_date") or record.get("end_date")


def derive_months_of_service(record: Mapping[str, Any]) -> ServiceTerm:
    """Derive months of service for a schedule.

    Tries the start/end date range, then an explicit positive
    ``months_of_service``, then back-calculates from ``periods``.
    Without any signal the term is 1 month for recurring schedules
    and 0 for one-time ones.
    """
    by_dates = months_from_dates(record.get("start_date"), end_date_of(record))
    if by_dates is not None:
        return ServiceTerm(months=by_dates, source="dates")

    explicit = to_number(record.get("months_of_service"))
    if explicit is not None and explicit > 0:
        return ServiceTerm(months=int(explicit) if explicit.is_integer() else explicit, source="explicit")

    unit = clamp_enum(record.get("frequency_unit"), FrequencyUnit, FrequencyUnit.NONE)
    every = pick_number(record.get("frequency_every"), 1)
    by_periods = months_from_periods(unit, every, record.get("periods"))
    if by_periods is not None:
        return ServiceTerm(months=by_periods, source="periods")

    if unit is FrequencyUnit.NONE:
        return ServiceTerm(months=0, source="default")
    return ServiceTerm(months=1, source="default")
