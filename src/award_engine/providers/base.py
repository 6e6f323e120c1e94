"""Uniform capability over heterogeneous availability sources."""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

import httpx

from award_engine.errors import ProviderUnreachableError, RateLimitedError

from .config import ProviderConfig, ProviderType
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    reachable: bool
    latency_ms: float
    checked_at: datetime
    error: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "reachable": self.reachable,
            "latency_ms": round(self.latency_ms, 1),
            "checked_at": self.checked_at.isoformat(),
            "error": self.error,
        }


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class Provider(ABC):
    """Base class for every registered source.

    ``fetch_availability`` is admitted by the provider's own ``RateLimiter`` and
    bounded by ``config.timeout_s``. ``health_check`` bypasses the limiter so
    probes and real traffic never starve each other.
    """

    provider_type: ClassVar[ProviderType]

    def __init__(self, config: ProviderConfig, *, rate_limiter: Optional[RateLimiter] = None) -> None:
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter(
            self.provider_id,
            config.requests_per_minute,
            config.requests_per_hour,
        )

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def provider_id(self) -> str:
        return f"{self.provider_type.value}:{self.config.name}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

    async def fetch_availability(self, query: Any) -> Any:
        self.validate_query(query)
        decision = self.rate_limiter.try_acquire()
        if not decision.allowed:
            raise RateLimitedError(self.provider_id, decision.retry_after or 0.0)

        timeout = self.config.timeout_s
        started = time.perf_counter()
        try:
            results = await asyncio.wait_for(self._execute_fetch(query), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderUnreachableError(self.provider_id, f"fetch timed out after {timeout:g}s") from exc
        except httpx.TransportError as exc:
            raise ProviderUnreachableError(self.provider_id, str(exc) or exc.__class__.__name__) from exc
        logger.info("Fetched availability from %s in %.0fms", self.provider_id, _elapsed_ms(started))
        return results

    async def health_check(self) -> HealthCheckResult:
        """Probe the source; failures are reported in the result, never raised."""
        timeout = self.config.timeout_s
        started = time.perf_counter()
        try:
            await asyncio.wait_for(self._execute_health_check(), timeout=timeout)
        except asyncio.TimeoutError:
            error = f"health check timed out after {timeout:g}s"
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
        else:
            return HealthCheckResult(
                reachable=True,
                latency_ms=_elapsed_ms(started),
                checked_at=datetime.now(timezone.utc),
            )
        logger.debug("Health probe for %s failed: %s", self.provider_id, error)
        return HealthCheckResult(
            reachable=False,
            latency_ms=_elapsed_ms(started),
            checked_at=datetime.now(timezone.utc),
            error=error,
        )

    def validate_query(self, query: Any) -> None:
        """Raise ``InvalidInputError`` for malformed queries; no-op by default."""

    async def aclose(self) -> None:
        return None

    @abstractmethod
    async def _execute_fetch(self, query: Any) -> Any:
        ...

    @abstractmethod
    async def _execute_health_check(self) -> None:
        ...


__all__ = ["HealthCheckResult", "Provider"]
