"""
Configuration and Environment Variable Validation

Reads settings from the environment, validates them and configures logging.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List

from .constants import DEFAULT_PURCHASE_MAX_ATTEMPTS, DEFAULT_PURCHASE_RETRY_BACKOFF_MS

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    """Runtime settings resolved from the environment."""
    database_url: str = "sqlite:///transfer_market.db"
    db_echo: bool = False
    sqlite_busy_timeout: float = 5.0
    purchase_max_attempts: int = DEFAULT_PURCHASE_MAX_ATTEMPTS
    purchase_retry_backoff_ms: int = DEFAULT_PURCHASE_RETRY_BACKOFF_MS
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def get_settings() -> Settings:
    """
    Build Settings from environment variables.

    Raises ValueError on malformed or out-of-range values.
    """
    cors = os.getenv("CORS_ORIGINS", "*")
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///transfer_market.db"),
        db_echo=os.getenv("DB_ECHO", "false").lower() in _TRUE_VALUES,
        sqlite_busy_timeout=_get_float("SQLITE_BUSY_TIMEOUT_SECONDS", 5.0),
        purchase_max_attempts=_get_int("PURCHASE_MAX_ATTEMPTS", DEFAULT_PURCHASE_MAX_ATTEMPTS),
        purchase_retry_backoff_ms=_get_int("PURCHASE_RETRY_BACKOFF_MS", DEFAULT_PURCHASE_RETRY_BACKOFF_MS),
        cors_origins=[o.strip() for o in cors.split(",") if o.strip()],
    )

    if settings.purchase_max_attempts < 1:
        raise ValueError("PURCHASE_MAX_ATTEMPTS must be at least 1")
    if settings.purchase_retry_backoff_ms < 0:
        raise ValueError("PURCHASE_RETRY_BACKOFF_MS cannot be negative")
    if settings.sqlite_busy_timeout <= 0:
        raise ValueError("SQLITE_BUSY_TIMEOUT_SECONDS must be positive")
    return settings


def validate_env() -> None:
    """
    Validate that required environment variables are set.
    Raises ValueError if any required variables are missing or malformed.
    """
    required_vars: List[str] = []  # Add any required vars here in the future

    missing = [var for var in required_vars if not os.getenv(var)]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    get_settings()

    # Validate optional but important vars
    optional_vars = {
        "DATABASE_URL": "Database connection",
        "CORS_ORIGINS": "CORS configuration",
        "PURCHASE_MAX_ATTEMPTS": "Purchase conflict retries",
    }

    for var, description in optional_vars.items():
        if os.getenv(var):
            logger.info(f"{var} is set ({description})")
        else:
            logger.debug(f"{var} not set ({description} - using default)")


def get_log_level() -> str:
    """Get log level from environment or default to INFO."""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging() -> None:
    """Configure structured logging."""
    log_level = get_log_level()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    logger.info(f"Logging configured at {log_level} level")
