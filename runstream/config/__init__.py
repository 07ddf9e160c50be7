"""Configuration for runstream."""

from .settings import (
    DEFAULT_PROVIDER_ENV_VAR,
    LOG_LEVEL_ENV_VAR,
    STRICT_EVENTS_ENV_VAR,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "STRICT_EVENTS_ENV_VAR",
    "LOG_LEVEL_ENV_VAR",
    "DEFAULT_PROVIDER_ENV_VAR",
]
