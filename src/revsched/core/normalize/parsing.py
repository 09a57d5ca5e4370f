"""
Parsing utilities for normalizing extracted data.

Handles loose numbers, dates and enum values from the untyped
output of the extraction service.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Iterable, TypeVar

import dateparser

E = TypeVar("E", bound=Enum)


# =============================================================================
# Number Parsing
# =============================================================================


# First numeric group: "$1,200.00", "USD 3000", "-12.5"
_NUMBER_PATTERN = re.compile(r"-?\d{1,3}(?:,\d{3})+(?:\.\d+)?|-?\d+(?:\.\d+)?|-?\.\d+")


def to_number(value: Any) -> float | None:
    """Coerce a loosely-typed value to a finite float.

    Strings yield their first numeric group with thousands separators
    stripped. Booleans, NaN and infinities are rejected.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    if isinstance(value, str):
        match = _NUMBER_PATTERN.search(value)
        if not match:
            return None
        try:
            number = float(match.group(0).replace(",", ""))
        except ValueError:
            return None
        return number if math.isfinite(number) else None

    return None


def pick_number(value: Any, fallback: float | None = None) -> float | None:
    """Return ``to_number(value)`` or ``fallback`` when it is not numeric."""
    number = to_number(value)
    return fallback if number is None else number


def positive(value: float | None) -> float | None:
    """Return the value when strictly positive, else None."""
    if value is not None and value > 0:
        return value
    return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


def clean_number(value: float | None) -> int | float | None:
    """Return integral floats as ints for tidy output."""
    if value is None:
        return None
    if float(value).is_integer():
        return int(value)
    return value


def is_blank(value: Any) -> bool:
    """Check for None, empty or whitespace-only strings."""
    return value is None or (isinstance(value, str) and not value.strip())


# =============================================================================
# Date Parsing
# =============================================================================


@dataclass
class ParsedDate:
    """Result of parsing a date string."""

    value: datetime | None
    original: str
    confidence: float  # 0.0 - 1.0
    format_detected: str | None = None


def parse_date(value: str | datetime | date | None) -> ParsedDate:
    """Parse a date/datetime from various formats.

    Handles:
    - ISO 8601 formats
    - US formats (MM/DD/YYYY)
    - Natural language ("January 1, 2024", "1st of March 2025")

    Args:
        value: String or datetime to parse

    Returns:
        ParsedDate with parsed value and metadata
    """
    if value is None:
        return ParsedDate(value=None, original="", confidence=0.0)

    if isinstance(value, datetime):
        return ParsedDate(value=value, original=value.isoformat(), confidence=1.0, format_detected="datetime")

    if isinstance(value, date):
        return ParsedDate(
            value=datetime.combine(value, time.min),
            original=value.isoformat(),
            confidence=1.0,
            format_detected="date",
        )

    if not isinstance(value, str):
        return ParsedDate(value=None, original=str(value), confidence=0.0)

    original = value.strip()
    text = " ".join(original.split())

    if not text:
        return ParsedDate(value=None, original=original, confidence=0.0)

    # Try common patterns first (faster than dateparser)
    result = _try_common_patterns(text)
    if result:
        return ParsedDate(
            value=result[0],
            original=original,
            confidence=result[1],
            format_detected=result[2],
        )

    # Contract dates need at least one digit; bare words are not dates
    if not re.search(r"\d", text):
        return ParsedDate(value=None, original=original, confidence=0.0)

    settings = {
        "PREFER_DAY_OF_MONTH": "first",
        "RETURN_AS_TIMEZONE_AWARE": False,
        "STRICT_PARSING": False,
        "DATE_ORDER": "MDY",
    }

    try:
        parsed = dateparser.parse(text, settings=settings)
    except (ValueError, OverflowError):
        parsed = None

    if parsed:
        confidence = 0.8 if re.search(r"\d{4}", text) else 0.6
        return ParsedDate(
            value=parsed,
            original=original,
            confidence=confidence,
            format_detected="dateparser",
        )

    return ParsedDate(value=None, original=original, confidence=0.0)


def _try_common_patterns(text: str) -> tuple[datetime, float, str] | None:
    """Try to parse using common date patterns (fast path)."""
    patterns = [
        (r"^(\d{4})-(\d{2})-(\d{2})(?:[T\s](\d{2}):(\d{2})(?::(\d{2}))?)?", 1.0, "iso"),
        (r"^(\d{1,2})/(\d{1,2})/(\d{4})\b", 0.85, "us_date"),
    ]

    for pattern, confidence, name in patterns:
        match = re.match(pattern, text)
        if not match:
            continue
        groups = match.groups()
        try:
            if name == "iso":
                year, month, day = int(groups[0]), int(groups[1]), int(groups[2])
                hour = int(groups[3]) if groups[3] else 0
                minute = int(groups[4]) if groups[4] else 0
                second = int(groups[5]) if groups[5] else 0
            else:
                month, day, year = int(groups[0]), int(groups[1]), int(groups[2])
                hour = minute = second = 0
            return (datetime(year, month, day, hour, minute, second), confidence, name)
        except ValueError:
            continue

    return None


def to_date(value: Any) -> date | None:
    """Parse a value to a calendar date, or None."""
    parsed = parse_date(value)
    return parsed.value.date() if parsed.value else None


# =============================================================================
# Enum Helpers
# =============================================================================


def clamp_enum(value: Any, allowed: type[E], fallback: E | None) -> E | None:
    """Match a string case-insensitively against an enum's values.

    Args:
        value: Raw value (enum member or string)
        allowed: Enum class whose values are accepted
        fallback: Returned when there is no match

    Returns:
        Matching enum member or the fallback
    """
    if isinstance(value, allowed):
        return value
    if not isinstance(value, str) or not value.strip():
        return fallback

    wanted = value.strip().lower()
    for member in allowed:
        if str(member.value).lower() == wanted:
            return member
    return fallback


# =============================================================================
# Text Helpers
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Normalize whitespace in text."""
    if text is None:
        return ""
    return " ".join(str(text).split())


def optional_text(value: Any) -> str | None:
    """Return stripped text, or None for blanks and non-scalars."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    text = normalize_whitespace(str(value))
    return text or None


def join_text(parts: Iterable[Any]) -> str:
    """Join the non-blank string forms of ``parts`` with spaces."""
    return " ".join(str(p) for p in parts if not is_blank(p))


def parse_flag(value: Any) -> bool | None:
    """Parse an explicit boolean ("true"/"yes"/"1"), or None when absent or unclear."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "y", "1"):
            return True
        if text in ("false", "no", "n", "0"):
            return False
    return None


def iso_date(value: Any) -> str | None:
    """Return a parseable date as ``YYYY-MM-DD``, or None."""
    parsed = to_date(value)
    return parsed.isoformat() if parsed else None
