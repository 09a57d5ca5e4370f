"""Shared fixtures for revsched tests."""

from __future__ import annotations

from typing import Any

import pytest

from revsched.core.config.models import AppConfig, IntegrationPair


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def support_candidate() -> dict[str, Any]:
    """A well-formed quarterly support line."""
    return {
        "item_name": "Platform Support Plan",
        "description": "Premium support billed quarterly",
        "billing_type": "Flat price",
        "total_price": "$3,000.00",
        "start_date": "2024-01-01",
        "frequency_unit": "Month(s)",
        "frequency_every": 3,
        "months_of_service": 12,
        "periods": 4,
        "net_terms": 30,
        "billing_timing": "first",
        "evidence": [{"page": 2, "snippet": "Support: $3,000.00 per quarter"}],
    }


@pytest.fixture
def license_candidate() -> dict[str, Any]:
    return {
        "item_name": "Platform License",
        "billing_type": "Flat price",
        "total_price": 24000,
        "start_date": "2024-01-01",
        "frequency_unit": "Year(s)",
        "frequency_every": 1,
        "months_of_service": 24,
    }


@pytest.fixture
def setup_candidate() -> dict[str, Any]:
    return {
        "item_name": "Implementation Services",
        "description": "One-time setup fee of $5,000",
        "frequency_unit": "None",
        "start_date": "2024-01-01",
    }


@pytest.fixture
def payload(support_candidate, license_candidate, setup_candidate) -> dict[str, Any]:
    return {
        "schedules": [support_candidate, license_candidate, setup_candidate],
        "issues": ["Contract total not stated"],
        "totals_check": {"sum_of_items": 32000, "contract_total_if_any": None, "matches": None},
        "model_recommendations": {"force_multi": True, "reasons": ["three fee lines"]},
    }


@pytest.fixture
def integration_pairs() -> list[IntegrationPair]:
    return [
        IntegrationPair(contract_name="Platform Support Plan", external_code="SUP-001"),
        IntegrationPair(contract_name="Platform License", external_code="LIC-100"),
        IntegrationPair(contract_name="Implementation Services", external_code="SVC-900"),
    ]
