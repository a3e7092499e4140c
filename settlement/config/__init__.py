"""Application configuration."""

from settlement.config.settings import Settings, settings


__all__ = ["Settings", "settings"]
