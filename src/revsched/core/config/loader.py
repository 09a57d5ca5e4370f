"""
Configuration loader for YAML and JSON files.

Loads and validates application config, merchant guidance and
integration mappings into Pydantic models.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import AppConfig, IntegrationPair, MerchantGuidance


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def _load_data_file(path: Path) -> Any:
    """Load a YAML or JSON file and return its contents.

    JSON is a subset of YAML, so both go through the YAML parser.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in string values.

    Supports ${VAR} and ${VAR:-default} syntax.
    """
    def replacer(match: re.Match[str]) -> str:
        return os.environ.get(match.group(1), match.group(2) or "")

    if isinstance(data, str):
        return _ENV_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
) -> AppConfig:
    """Load application configuration from YAML file.

    Args:
        path: Path to app.yaml (default: configs/app.yaml)
        expand_env: Whether to expand environment variables

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    path = Path("configs/app.yaml") if path is None else Path(path)

    # Missing default file means defaults
    if not path.exists():
        return AppConfig()

    data = _load_data_file(path) or {}

    if expand_env:
        data = _expand_env_vars(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid app configuration in {path}",
            path=path,
            details=str(e),
        ) from e


def load_guidance(path: Path | str, expand_env: bool = True) -> MerchantGuidance:
    """Load merchant guidance from a YAML/JSON file.

    Raises:
        ConfigError: If the file is missing or invalid
    """
    path = Path(path)
    data = _load_data_file(path) or {}

    if expand_env:
        data = _expand_env_vars(data)

    try:
        return MerchantGuidance.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid merchant guidance in {path}",
            path=path,
            details=str(e),
        ) from e


def parse_integration_pairs(data: Any) -> list[IntegrationPair]:
    """Validate a list of ``[name, code]`` pairs or ``{contract_name, external_code}`` mappings.

    Raises:
        ValueError: If the data is not a list of valid pairs
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("integration mapping must be a list of pairs")

    pairs: list[IntegrationPair] = []
    for idx, entry in enumerate(data):
        try:
            pairs.append(IntegrationPair.model_validate(entry))
        except ValidationError as e:
            raise ValueError(f"entry {idx}: {e.errors()[0]['msg']}") from e
    return pairs


def load_integration_mapping(path: Path | str) -> list[IntegrationPair]:
    """Load integration pairs from a YAML/JSON file.

    Raises:
        ConfigError: If the file is missing or invalid
    """
    path = Path(path)
    data = _load_data_file(path)

    try:
        return parse_integration_pairs(data)
    except ValueError as e:
        raise ConfigError(
            f"Invalid integration mapping in {path}",
            path=path,
            details=str(e),
        ) from e


def load_candidates_file(path: Path | str) -> str:
    """Read a raw extraction payload file as text.

    Raises:
        ConfigError: If the file cannot be read
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Payload file not found: {path}", path=path)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}", path=path, details=str(e)) from e


def validate_guidance_file(path: Path | str) -> list[str]:
    """Validate a guidance file without loading.

    Returns:
        List of validation error messages (empty if valid)
    """
    path = Path(path)
    errors: list[str] = []

    if not path.exists():
        errors.append(f"File not found: {path}")
        return errors

    try:
        data = _load_data_file(path) or {}
    except ConfigError as e:
        errors.append(str(e))
        return errors

    try:
        MerchantGuidance.model_validate(data)
    except ValidationError as e:
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"{loc}: {error['msg']}")

    return errors
