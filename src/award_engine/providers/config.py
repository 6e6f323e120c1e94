"""Provider identity and connection settings."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class ProviderType(str, Enum):
    FLIGHT = "flight"
    HOTEL = "hotel"
    ACTIVITY = "activity"


class ProviderConfig(BaseModel):
    """Connection details and request budget for one external source."""

    name: str
    type: ProviderType = ProviderType.FLIGHT
    api_key: Optional[str] = Field(default=None, repr=False)
    base_url: Optional[str] = None
    timeout_s: float = Field(default=20.0, gt=0, description="Upper bound for a single fetch or probe")
    requests_per_minute: int = Field(default=60, gt=0)
    requests_per_hour: int = Field(default=1000, gt=0)
    program: Optional[str] = Field(default=None, description="Restrict searches to one loyalty program")
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("provider name must be a non-empty string")
        return value.strip()

    @field_validator("base_url", "api_key", "program", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


__all__ = ["ProviderConfig", "ProviderType"]
