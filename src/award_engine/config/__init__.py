"""Environment-driven settings and provider configuration loading."""

from .settings import Settings, load_provider_configs

__all__ = ["Settings", "load_provider_configs"]
