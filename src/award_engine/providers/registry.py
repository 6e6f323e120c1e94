"""Provider registry with a periodic, bounded health-check loop."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from award_engine.errors import DuplicateProviderError, InvalidInputError, ProviderNotFoundError

from .base import HealthCheckResult, Provider
from .config import ProviderConfig, ProviderType

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3

ProviderKey = Tuple[ProviderType, str]
ProviderFactory = Callable[[ProviderConfig], Provider]


class HealthState(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNREACHABLE = "unreachable"


@dataclass(slots=True)
class HealthStatus:
    """Liveness bookkeeping for one registered provider."""

    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    state: HealthState = HealthState.UNKNOWN
    last_checked: Optional[datetime] = None
    last_reachable: Optional[bool] = None
    consecutive_failures: int = 0
    last_latency_ms: Optional[float] = None
    last_error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.consecutive_failures >= self.failure_threshold

    def record(self, result: HealthCheckResult) -> None:
        self.last_checked = result.checked_at
        self.last_reachable = result.reachable
        self.last_latency_ms = result.latency_ms
        if result.reachable:
            self.state = HealthState.HEALTHY
            self.consecutive_failures = 0
            self.last_error = None
        else:
            self.state = HealthState.UNREACHABLE
            self.consecutive_failures += 1
            self.last_error = result.error

    def copy(self) -> "HealthStatus":
        return HealthStatus(
            failure_threshold=self.failure_threshold,
            state=self.state,
            last_checked=self.last_checked,
            last_reachable=self.last_reachable,
            consecutive_failures=self.consecutive_failures,
            last_latency_ms=self.last_latency_ms,
            last_error=self.last_error,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
            "last_reachable": self.last_reachable,
            "consecutive_failures": self.consecutive_failures,
            "last_latency_ms": round(self.last_latency_ms, 1) if self.last_latency_ms is not None else None,
            "last_error": self.last_error,
            "degraded": self.degraded,
        }


@dataclass(slots=True)
class _Entry:
    provider: Provider
    status: HealthStatus


def _coerce_type(provider_type: Union[ProviderType, str]) -> ProviderType:
    try:
        return ProviderType(provider_type)
    except ValueError as exc:
        raise ProviderNotFoundError(f"Unknown provider type {provider_type!r}") from exc


class ProviderRegistry:
    """Owns every registered provider and its health, keyed by (type, name).

    Registration never overwrites. Degraded providers stay registered and are
    only skipped by ``select_provider``.
    """

    def __init__(self, failure_threshold: int = DEFAULT_FAILURE_THRESHOLD) -> None:
        if failure_threshold < 1:
            raise InvalidInputError("failure_threshold must be at least 1", field="failure_threshold")
        self.failure_threshold = failure_threshold
        self._entries: Dict[ProviderKey, _Entry] = {}
        self._loop_task: Optional[asyncio.Task[None]] = None

    def __len__(self) -> int:
        return len(self._entries)

    # Registration -----------------------------------------------------------------

    def register_provider(self, provider_type: Union[ProviderType, str], name: str, provider: Provider) -> None:
        kind = _coerce_type(provider_type)
        key = (kind, name)
        if key in self._entries:
            raise DuplicateProviderError(f"A {kind.value} provider named {name!r} is already registered")
        self._entries[key] = _Entry(provider=provider, status=HealthStatus(self.failure_threshold))
        logger.info("Registered %s provider %s", kind.value, name)

    def register_flight_provider(self, name: str, provider: Provider) -> None:
        self.register_provider(ProviderType.FLIGHT, name, provider)

    def register_hotel_provider(self, name: str, provider: Provider) -> None:
        self.register_provider(ProviderType.HOTEL, name, provider)

    def register_from_config(self, config: ProviderConfig, factory: ProviderFactory) -> Provider:
        provider = factory(config)
        self.register_provider(config.type, config.name, provider)
        return provider

    def unregister_provider(self, provider_type: Union[ProviderType, str], name: str) -> Provider:
        key = (_coerce_type(provider_type), name)
        entry = self._entries.pop(key, None)
        if entry is None:
            raise ProviderNotFoundError(f"No {key[0].value} provider named {name!r}")
        logger.info("Unregistered %s provider %s", key[0].value, name)
        return entry.provider

    # Lookup -----------------------------------------------------------------------

    def list_providers(self, provider_type: Union[ProviderType, str]) -> List[str]:
        kind = _coerce_type(provider_type)
        return [name for (entry_type, name) in self._entries if entry_type is kind]

    def get_provider(self, provider_type: Union[ProviderType, str], name: str) -> Provider:
        return self._entry(provider_type, name).provider

    def health_status(self, provider_type: Union[ProviderType, str], name: str) -> HealthStatus:
        return self._entry(provider_type, name).status.copy()

    def select_provider(self, provider_type: Union[ProviderType, str]) -> Provider:
        """Return the first usable provider of a type, preferring ones not known to be down."""
        kind = _coerce_type(provider_type)
        candidates = [entry for (entry_type, _), entry in self._entries.items() if entry_type is kind]
        usable = [entry for entry in candidates if not entry.status.degraded]
        for entry in usable:
            if entry.status.state is not HealthState.UNREACHABLE:
                return entry.provider
        if usable:
            return usable[0].provider
        raise ProviderNotFoundError(f"No usable {kind.value} provider is registered")

    def _entry(self, provider_type: Union[ProviderType, str], name: str) -> _Entry:
        key = (_coerce_type(provider_type), name)
        try:
            return self._entries[key]
        except KeyError:
            raise ProviderNotFoundError(f"No {key[0].value} provider named {name!r}") from None

    # Health -----------------------------------------------------------------------

    async def check_all_health(self) -> Dict[ProviderKey, HealthStatus]:
        entries = list(self._entries.items())
        if not entries:
            return {}
        results = await asyncio.gather(*(self._bounded_check(entry.provider) for _, entry in entries))
        snapshot: Dict[ProviderKey, HealthStatus] = {}
        for (key, entry), result in zip(entries, results):
            was_degraded = entry.status.degraded
            previous = entry.status.state
            entry.status.record(result)
            if entry.status.state is not previous:
                logger.info("Provider %s:%s is now %s", key[0].value, key[1], entry.status.state.value)
            if entry.status.degraded and not was_degraded:
                logger.warning(
                    "Provider %s:%s degraded after %d consecutive failures (%s)",
                    key[0].value,
                    key[1],
                    entry.status.consecutive_failures,
                    entry.status.last_error,
                )
            snapshot[key] = entry.status.copy()
        return snapshot

    @staticmethod
    async def _bounded_check(provider: Provider) -> HealthCheckResult:
        timeout = provider.config.timeout_s
        try:
            return await asyncio.wait_for(provider.health_check(), timeout=timeout)
        except asyncio.TimeoutError:
            error = f"health check exceeded {timeout:g}s"
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
        return HealthCheckResult(
            reachable=False,
            latency_ms=timeout * 1000,
            checked_at=datetime.now(timezone.utc),
            error=error,
        )

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start_health_check_loop(self, interval: float) -> None:
        if interval <= 0:
            raise InvalidInputError("Health check interval must be positive", field="interval")
        if self.is_running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._health_loop(interval))
        logger.info("Health check loop started (every %gs)", interval)

    async def stop_health_check_loop(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Health check loop stopped")

    async def _health_loop(self, interval: float) -> None:
        while True:
            try:
                await self.check_all_health()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Health check cycle failed")
            await asyncio.sleep(interval)

    async def aclose(self) -> None:
        await self.stop_health_check_loop()
        for (kind, name), entry in list(self._entries.items()):
            try:
                await entry.provider.aclose()
            except Exception:
                logger.warning("Failed to close %s provider %s", kind.value, name, exc_info=True)

    def summary(self) -> dict[str, object]:
        providers = []
        counts = {state.value: 0 for state in HealthState}
        degraded = 0
        for (kind, name), entry in self._entries.items():
            counts[entry.status.state.value] += 1
            degraded += int(entry.status.degraded)
            providers.append({"type": kind.value, "name": name, **entry.status.to_dict()})
        return {
            "total": len(self._entries),
            "degraded": degraded,
            "by_state": counts,
            "running": self.is_running,
            "providers": providers,
        }


__all__ = ["HealthState", "HealthStatus", "ProviderRegistry"]
