"""Rapport configuration.

    from rapport.config import get_settings

    settings = get_settings()
    settings.friendship.field_name
"""

from functools import lru_cache

from rapport.config.loader import load_config
from rapport.config.settings import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for the current RAPPORT_ENV, built once per process.

    TOML layers provide the values, RAPPORT_* environment variables
    override them.
    """
    return Settings(**load_config())


def reload_settings() -> Settings:
    """Re-read the TOML layers and the environment."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
