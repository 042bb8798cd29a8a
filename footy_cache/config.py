"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults, plus the structlog wiring used by every
component.
"""

import logging
import os
import sys
from dataclasses import dataclass

import structlog


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(name: str, default: int) -> int:
    """Get an integer from environment, falling back on bad input."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """Get a float from environment, falling back on bad input."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        ENABLE_MEMORY_CACHE: Use the in-process tier.
        ENABLE_REDIS_CACHE: Use the shared Redis tier.
        REDIS_URL: Redis connection URL.
        CACHE_DEFAULT_TTL: TTL in seconds when a write names none.
        CACHE_MAX_MEMORY_BYTES: Soft bound for the in-process tier.
        CACHE_SWEEP_INTERVAL_SECONDS: Period of the expired-entry sweep.
        CACHE_REMOTE_TIMEOUT_SECONDS: Upper bound for any single Redis call.
        CACHE_ENABLE_WARMING: Warm the cache shortly after startup.
        CACHE_ENABLE_BACKGROUND_REFRESH: Periodically refresh volatile queries.
        CACHE_WARMING_DELAY_SECONDS: Delay between startup and warming.
        CACHE_REFRESH_INTERVAL_SECONDS: Period of the background refresh.
        LOG_LEVEL: Logging level.
        LOG_JSON: Render logs as JSON instead of console output.
    """

    # Tiers
    ENABLE_MEMORY_CACHE: bool = True
    ENABLE_REDIS_CACHE: bool = False
    REDIS_URL: str = "redis://localhost:6379"

    # Engine
    CACHE_DEFAULT_TTL: int = 900  # 15 minutes
    CACHE_MAX_MEMORY_BYTES: int = 100 * 1024 * 1024  # 100MB
    CACHE_SWEEP_INTERVAL_SECONDS: float = 300.0  # 5 minutes
    CACHE_REMOTE_TIMEOUT_SECONDS: float = 0.5

    # Warming
    CACHE_ENABLE_WARMING: bool = True
    CACHE_ENABLE_BACKGROUND_REFRESH: bool = True
    CACHE_WARMING_DELAY_SECONDS: float = 5.0
    CACHE_REFRESH_INTERVAL_SECONDS: float = 300.0  # 5 minutes

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            ENABLE_MEMORY_CACHE=_get_bool_env("ENABLE_MEMORY_CACHE", default=True),
            ENABLE_REDIS_CACHE=_get_bool_env("ENABLE_REDIS_CACHE", default=False),
            REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379"),
            CACHE_DEFAULT_TTL=_get_int_env("CACHE_DEFAULT_TTL", 900),
            CACHE_MAX_MEMORY_BYTES=_get_int_env("CACHE_MAX_MEMORY_BYTES", 100 * 1024 * 1024),
            CACHE_SWEEP_INTERVAL_SECONDS=_get_float_env("CACHE_SWEEP_INTERVAL_SECONDS", 300.0),
            CACHE_REMOTE_TIMEOUT_SECONDS=_get_float_env("CACHE_REMOTE_TIMEOUT_SECONDS", 0.5),
            CACHE_ENABLE_WARMING=_get_bool_env("CACHE_ENABLE_WARMING", default=True),
            CACHE_ENABLE_BACKGROUND_REFRESH=_get_bool_env(
                "CACHE_ENABLE_BACKGROUND_REFRESH", default=True
            ),
            CACHE_WARMING_DELAY_SECONDS=_get_float_env("CACHE_WARMING_DELAY_SECONDS", 5.0),
            CACHE_REFRESH_INTERVAL_SECONDS=_get_float_env("CACHE_REFRESH_INTERVAL_SECONDS", 300.0),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            LOG_JSON=_get_bool_env("LOG_JSON", default=False),
        )


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through the standard library logging module.

    Args:
        level: Logging level name (DEBUG, INFO, ...).
        json_output: Render events as JSON lines instead of console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


# Global settings instance
settings = Settings.from_env()
