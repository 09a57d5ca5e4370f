"""Projection into the billing system's schema."""

from .garage import (
    GarageSchedule,
    GarageTier,
    to_garage_all,
    to_garage_billing_type,
    to_garage_frequency,
    to_garage_schedule,
)
from .guidance import apply_guidance

__all__ = [
    "GarageSchedule",
    "GarageTier",
    "to_garage_all",
    "to_garage_billing_type",
    "to_garage_frequency",
    "to_garage_schedule",
    "apply_guidance",
]
