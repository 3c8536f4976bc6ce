"""Configuration loading for Switchboard.

Usage:
    from switchboard.config import get_settings

    settings = get_settings()
    ttl = settings.storage.state.ttl_seconds
"""

from functools import lru_cache

from switchboard.config.loader import ConfigLayers, load_config
from switchboard.config.settings import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for the current environment, read once per process."""
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["ConfigLayers", "Settings", "get_settings", "load_config", "reload_settings"]
