"""Exception types shared across providers and valuation."""
from __future__ import annotations

from typing import Optional


class AwardEngineError(Exception):
    """Base class for all errors raised by this package."""


class RateLimitedError(AwardEngineError):
    """Raised when a provider's request budget is exhausted."""

    def __init__(self, provider_id: str, retry_after: float) -> None:
        super().__init__(f"Provider '{provider_id}' rate limited; retry after {retry_after:.2f}s")
        self.provider_id = provider_id
        self.retry_after = retry_after


class ProviderUnreachableError(AwardEngineError):
    """Raised when a provider fetch fails or exceeds its timeout."""

    def __init__(self, provider_id: str, reason: str) -> None:
        super().__init__(f"Provider '{provider_id}' unreachable: {reason}")
        self.provider_id = provider_id
        self.reason = reason


class ProviderNotFoundError(AwardEngineError, LookupError):
    """Raised when no provider is registered under the requested key."""


class DuplicateProviderError(AwardEngineError):
    """Raised when a (type, name) slot is already occupied."""


class InvalidInputError(AwardEngineError, ValueError):
    """Raised when an itinerary, pricing record or config is malformed."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


__all__ = [
    "AwardEngineError",
    "DuplicateProviderError",
    "InvalidInputError",
    "ProviderNotFoundError",
    "ProviderUnreachableError",
    "RateLimitedError",
]
