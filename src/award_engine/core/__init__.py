"""Process-wide plumbing shared by scripts and services."""

from .logging import configure_logging

__all__ = ["configure_logging"]
