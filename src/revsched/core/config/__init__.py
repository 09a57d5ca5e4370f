"""Configuration loading and validation."""

from .models import (
    # Enums
    BillingType,
    FrequencyUnit,
    BillingTiming,
    GarageBillingType,
    GarageFrequencyUnit,
    MatchConfidence,
    # Config models
    AppConfig,
    LoggingConfig,
    NormalizeConfig,
    ReconcileConfig,
    MatchingConfig,
    FieldGuidance,
    MerchantGuidance,
    IntegrationPair,
)
from .loader import (
    ConfigError,
    load_app_config,
    load_guidance,
    load_integration_mapping,
    parse_integration_pairs,
    validate_guidance_file,
)

__all__ = [
    # Enums
    "BillingType",
    "FrequencyUnit",
    "BillingTiming",
    "GarageBillingType",
    "GarageFrequencyUnit",
    "MatchConfidence",
    # Config models
    "AppConfig",
    "LoggingConfig",
    "NormalizeConfig",
    "ReconcileConfig",
    "MatchingConfig",
    "FieldGuidance",
    "MerchantGuidance",
    "IntegrationPair",
    # Loaders
    "ConfigError",
    "load_app_config",
    "load_guidance",
    "load_integration_mapping",
    "parse_integration_pairs",
    "validate_guidance_file",
]
