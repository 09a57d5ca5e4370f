"""Merchant guidance post-processing of external schedules."""

from __future__ import annotations

import copy
from typing import Any, Mapping, Sequence

from revsched.core.config.models import MerchantGuidance
from revsched.core.normalize.parsing import is_blank

from .garage import GarageSchedule


def _is_empty(value: Any) -> bool:
    return is_blank(value) or (isinstance(value, (list, dict)) and not value)


def apply_guidance(
    records: Sequence[GarageSchedule | Mapping[str, Any]],
    guidance: MerchantGuidance | None,
) -> list[dict[str, Any]]:
    """Fill empty fields from ``default_overrides`` and drop ``excluded_fields``.

    Overrides only fill values that are missing, None or blank; they
    never replace extracted data. The guidance object is not modified.
    """
    output: list[dict[str, Any]] = []
    for record in records:
        data = record.to_dict() if isinstance(record, GarageSchedule) else dict(record)

        if guidance is not None:
            for key, value in guidance.default_overrides.items():
                if _is_empty(data.get(key)):
                    data[key] = copy.deepcopy(value)
            for key in guidance.excluded_fields:
                data.pop(key, None)

        output.append(data)
    return output
