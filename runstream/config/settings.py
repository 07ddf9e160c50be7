"""
Runtime settings for runstream.

Settings are read from the process environment after loading a local
``.env`` file, so the same knobs work in development and deployment.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

STRICT_EVENTS_ENV_VAR = "RUNSTREAM_STRICT_EVENTS"
LOG_LEVEL_ENV_VAR = "RUNSTREAM_LOG_LEVEL"
DEFAULT_PROVIDER_ENV_VAR = "RUNSTREAM_DEFAULT_PROVIDER"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class Settings(BaseModel):
    """Process-level defaults consumed when a run does not override them."""

    strict_events: bool = Field(
        default=__debug__,
        description="Raise on events that reference unknown or completed steps "
                    "instead of logging and skipping them"
    )
    log_level: str = Field(
        default="WARNING",
        description="Level applied to the 'runstream' logger by configure_logging()"
    )
    default_provider: Optional[str] = Field(
        default=None,
        description="Provider used when an llm_config omits one"
    )

    @field_validator("log_level")
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


def _parse_bool(raw: str, env_var: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{env_var} must be a boolean flag, got {raw!r}")


def get_settings(load_env: bool = True) -> Settings:
    """Build Settings from the environment.

    Args:
        load_env: Load a ``.env`` file first (existing variables win)

    Returns:
        Fresh Settings instance; nothing is cached between calls
    """
    if load_env:
        load_dotenv()

    values = {}
    strict = os.getenv(STRICT_EVENTS_ENV_VAR)
    if strict is not None and strict.strip():
        values["strict_events"] = _parse_bool(strict, STRICT_EVENTS_ENV_VAR)
    log_level = os.getenv(LOG_LEVEL_ENV_VAR)
    if log_level:
        values["log_level"] = log_level
    provider = os.getenv(DEFAULT_PROVIDER_ENV_VAR)
    if provider:
        values["default_provider"] = provider
    return Settings(**values)
