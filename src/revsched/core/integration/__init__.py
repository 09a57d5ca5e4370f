"""Integration item code matching."""

from .matching import (
    IntegrationMatch,
    annotate_schedules,
    confidence_for_score,
    match_integration_item,
)

__all__ = [
    "IntegrationMatch",
    "annotate_schedules",
    "confidence_for_score",
    "match_integration_item",
]
