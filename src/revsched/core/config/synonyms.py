"""
Keyword tables used by the heuristic normalizers.

This module holds the field aliases and text patterns that map
free-text extraction output onto canonical billing concepts. Kept
separate from the normalizers so the vocabulary can be reviewed
in one place.
"""

from __future__ import annotations

import re

# =============================================================================
# Price Field Aliases (priority order)
# =============================================================================

PRICE_FIELDS_PRIMARY: list[str] = [
    "total_price",
    "price",
    "amount",
    "per_period_price",
    "per_period",
    "annual_price",
    "monthly_price",
]

PRICE_FIELDS_SECONDARY: list[str] = [
    "setup_fee",
    "one_time_fee",
    "upfront",
    "down_payment",
    "line_total",
    "subtotal",
]

PRICE_FIELDS: list[str] = PRICE_FIELDS_PRIMARY + PRICE_FIELDS_SECONDARY


# =============================================================================
# Per-Unit / Usage Evidence
# =============================================================================

# Time nouns are deliberately absent: they signal frequency, not usage.
USAGE_NOUNS: list[str] = [
    "seat",
    "user",
    "impression",
    "click",
    "lead",
    "unit",
    "order",
    "transaction",
    "visit",
    "listing",
    "ad",
    "sku",
    "gb",
    "hour",
    "minute",
    "api call",
    "api",
    "sms",
    "email",
    "message",
    "device",
    "location",
]

PER_UNIT_PATTERN = re.compile(
    r"(?:\b(?:per|each)|/)\s*(?:" + "|".join(re.escape(n) for n in USAGE_NOUNS) + r")s?\b"
)

USAGE_WORDS_PATTERN = re.compile(
    r"\b(?:overage|usage|metered|consumption|rate\s*card|per[-\s]*use)\b"
)

TIME_UNIT_LABEL_PATTERN = re.compile(r"\b(?:month|year|week|day|period)s?\b", re.IGNORECASE)


# =============================================================================
# Frequency Hints (checked in order)
# =============================================================================

FREQUENCY_HINTS: list[tuple[str, str]] = [
    ("annual", "Year(s)"),
    ("month", "Month(s)"),
    ("week", "Week(s)"),
    ("semi", "Semi_month(s)"),
    ("day", "Day(s)"),
]

NO_FREQUENCY_HINTS: list[str] = ["none", "one-time"]


# =============================================================================
# Evidence Context Scoring
# =============================================================================

MONTHLY_CONTEXT = re.compile(r"\b(?:monthly|per\s*month|per\s*mo\b\.?)")
ANNUAL_CONTEXT = re.compile(r"\b(?:annual|annually|yearly|per\s*year)\b")
ONE_TIME_CONTEXT = re.compile(r"\b(?:one[-\s]?time|setup|implementation)\b")
TOTAL_CONTEXT = re.compile(r"\b(?:line\s*total|total)\b")
NEGATIVE_CONTEXT = re.compile(
    r"\b(?:discount|credit|rebate|tax|deposit|retainer|balance\s*due)\b"
)
PER_UNIT_CONTEXT = re.compile(
    r"\b(?:each|per\s*(?:seat|user|lead|click|impression|unit|gb|api|sms|email))\b"
)

CURRENCY_AMOUNT_PATTERN = re.compile(
    r"(?:US\$|\$|USD)\s*([0-9]{1,3}(?:,[0-9]{3})+(?:\.\d{1,2})?|[0-9]+(?:\.\d{1,2})?)",
    re.IGNORECASE,
)


# =============================================================================
# Explicit Zero Signals
# =============================================================================

ZERO_TERMS_PATTERN = re.compile(
    r"\b(?:no\s*charge|free|complimentary|waived|included\s+at\s+no\s+extra\s+cost|zero)\b"
    r"|(?<![\w/-])n[-/.]c\.?(?![\w/-])",
    re.IGNORECASE,
)
ZERO_CURRENCY_PATTERN = re.compile(r"(?:US\$|\$|USD)\s*0(?:\.0{1,2})?(?![\d.,])", re.IGNORECASE)
FULL_DISCOUNT_PATTERN = re.compile(r"\b100\s*%\s*(?:discount|off)\b", re.IGNORECASE)


# =============================================================================
# One-Time Item Defaults
# =============================================================================

ONE_TIME_TEXT_PATTERN = re.compile(
    r"one[-\s]?time|setup|implementation|professional services", re.IGNORECASE
)

ONE_TIME_DEFAULT_NAME = "Implementation & One-Time Services"
ONE_TIME_DEFAULT_DESCRIPTION = "Total one-time fees listed on order form"
