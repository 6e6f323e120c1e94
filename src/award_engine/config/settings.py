"""Runtime configuration for the award engine.

Relies on pydantic-settings so that environment variables (prefixed with ``AWARD_``)
can override defaults. Provider connections live in a separate TOML file, see
``providers.example.toml``.
"""
from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from award_engine.errors import InvalidInputError
from award_engine.providers.config import ProviderConfig
from award_engine.providers.registry import DEFAULT_FAILURE_THRESHOLD
from award_engine.valuation.engine import DEFAULT_THRESHOLDS, ValuationPolicy

logger = logging.getLogger(__name__)


def _parse_threshold_map(value: object, field_name: str) -> Dict[str, float]:
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        pairs: Dict[str, float] = {}
        for part in value.split(","):
            if not part.strip():
                continue
            key, sep, raw = part.partition("=")
            if not sep:
                raise ValueError(f"{field_name} entries must look like 'tier=cents'")
            pairs[key.strip().lower()] = float(raw)
        return pairs
    if isinstance(value, dict):
        return {str(getattr(key, "value", key)).lower(): float(raw) for key, raw in value.items()}
    raise TypeError(f"{field_name} must be a mapping or a comma-separated 'tier=cents' string")


class Settings(BaseSettings):
    """Captures runtime configuration for the engine and its providers."""

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    health_check_interval_s: float = Field(
        default=60.0, gt=0, description="Seconds between provider health-check cycles"
    )
    health_failure_threshold: int = Field(
        default=DEFAULT_FAILURE_THRESHOLD,
        ge=1,
        description="Consecutive failed checks before a provider is treated as degraded",
    )
    provider_config_path: Optional[Path] = Field(
        default=None, description="TOML file with one [[providers]] table per external source"
    )

    rating_thresholds: Dict[str, float] = Field(
        default_factory=lambda: {rating.value: cents for rating, cents in DEFAULT_THRESHOLDS.items()},
        description="Minimum cents/point per value tier",
    )
    cabin_rating_thresholds: Dict[str, Dict[str, float]] = Field(
        default_factory=dict,
        description="Per-cabin overrides of rating_thresholds, e.g. {\"business\": {\"excellent\": 2.5}}",
    )
    good_deal_cutoff: str = Field(default="good", description="Lowest tier that still counts as a good deal")
    default_currency: str = Field(default="USD")

    model_config = SettingsConfigDict(
        env_prefix="AWARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    @field_validator("log_dir", mode="before")
    def _expand_log_dir(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value
        return Path(value).expanduser()

    @field_validator("provider_config_path", mode="before")
    def _expand_provider_config(cls, value: str | Path | None) -> Optional[Path]:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    @field_validator("rating_thresholds", mode="before")
    def _parse_rating_thresholds(cls, value: object) -> Dict[str, float]:
        parsed = _parse_threshold_map(value, "rating_thresholds")
        return {**{rating.value: cents for rating, cents in DEFAULT_THRESHOLDS.items()}, **parsed}

    @field_validator("cabin_rating_thresholds", mode="before")
    def _parse_cabin_thresholds(cls, value: object) -> Dict[str, Dict[str, float]]:
        if value in (None, ""):
            return {}
        if not isinstance(value, dict):
            raise TypeError("cabin_rating_thresholds must be a mapping of cabin to tier thresholds")
        return {
            str(getattr(cabin, "value", cabin)).lower(): _parse_threshold_map(overrides, "cabin_rating_thresholds")
            for cabin, overrides in value.items()
        }

    @field_validator("good_deal_cutoff", "default_currency", mode="before")
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("good_deal_cutoff")
    def _lower_cutoff(cls, value: str) -> str:
        return value.lower()

    @field_validator("default_currency")
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def valuation_policy(self) -> ValuationPolicy:
        return ValuationPolicy.from_settings(self)

    def provider_configs(self) -> List[ProviderConfig]:
        if self.provider_config_path is None:
            return []
        return load_provider_configs(self.provider_config_path)


def load_provider_configs(path: Path) -> List[ProviderConfig]:
    """Read ``[[providers]]`` tables from a TOML file.

    An entry may name ``api_key_env`` instead of embedding ``api_key``; the key
    is then read from that environment variable.
    """
    with path.open("rb") as handle:
        document = tomllib.load(handle)

    entries = document.get("providers", [])
    if not isinstance(entries, list):
        raise InvalidInputError(f"{path}: 'providers' must be an array of tables", field="providers")

    configs: List[ProviderConfig] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise InvalidInputError(f"{path}: providers[{index}] must be a table", field="providers")
        data = dict(entry)
        env_name = data.pop("api_key_env", None)
        if env_name and not data.get("api_key"):
            data["api_key"] = os.environ.get(env_name)
            if not data["api_key"]:
                logger.warning("Environment variable %s for provider %s is not set", env_name, data.get("name"))
        try:
            configs.append(ProviderConfig(**data))
        except ValidationError as exc:
            raise InvalidInputError(f"{path}: providers[{index}] is invalid: {exc}", field="providers") from exc
    logger.debug("Loaded %d provider configs from %s", len(configs), path)
    return configs


__all__ = ["Settings", "load_provider_configs"]
