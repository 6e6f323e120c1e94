"""Register configured providers and report their health."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from award_engine.config.settings import Settings, load_provider_configs
from award_engine.core.logging import configure_logging
from award_engine.errors import AwardEngineError
from award_engine.providers import ProviderConfig, ProviderRegistry, ProviderType, SeatsAeroFlightProvider

logger = logging.getLogger(__name__)


def _build_provider(config: ProviderConfig) -> SeatsAeroFlightProvider:
    if config.type is not ProviderType.FLIGHT:
        raise AwardEngineError(f"No client available for {config.type.value} provider {config.name}")
    return SeatsAeroFlightProvider(config)


async def run(settings: Settings, config_path: Path, rounds: int) -> dict[str, object]:
    registry = ProviderRegistry(failure_threshold=settings.health_failure_threshold)
    for config in load_provider_configs(config_path):
        try:
            registry.register_from_config(config, _build_provider)
        except AwardEngineError as exc:
            logger.warning("Skipping provider %s: %s", config.name, exc)

    try:
        for index in range(rounds):
            if index:
                await asyncio.sleep(settings.health_check_interval_s)
            await registry.check_all_health()
            logger.info("Completed health round %d/%d", index + 1, rounds)
        return registry.summary()
    finally:
        await registry.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Health-check every configured availability provider")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Provider TOML file (defaults to AWARD_PROVIDER_CONFIG_PATH)",
    )
    parser.add_argument("--rounds", type=int, default=1, help="Number of health-check rounds to run")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()

    config_path: Optional[Path] = args.config or settings.provider_config_path
    if config_path is None:
        parser.error("No provider config given; pass --config or set AWARD_PROVIDER_CONFIG_PATH")
    if not config_path.exists():
        parser.error(f"Provider config not found: {config_path}")
    if args.rounds < 1:
        parser.error("--rounds must be at least 1")

    summary = asyncio.run(run(settings, config_path, args.rounds))
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
