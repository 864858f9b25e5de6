"""
Shared dependencies for the application.

This module holds initialized services that are shared across routes.
Initialized once at app startup and accessed via get_dependencies().
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from ..config import Settings, get_settings
from ..database.crud import DatabaseManager
from .listing_service import ListingManager
from .purchase_service import PurchaseEngine
from .query_service import TransferQueryService
from .team_service import TeamService

logger = logging.getLogger(__name__)


@dataclass
class Dependencies:
    """Container for all shared dependencies."""
    settings: Settings
    db_manager: DatabaseManager
    listing_manager: ListingManager
    purchase_engine: PurchaseEngine
    query_service: TransferQueryService
    team_service: TeamService


# Global dependencies instance - initialized by init_dependencies()
_deps: Optional[Dependencies] = None


def build_dependencies(settings: Settings, rng: Optional[random.Random] = None) -> Dependencies:
    """Wire every service against one database manager."""
    db_manager = DatabaseManager(
        settings.database_url,
        echo=settings.db_echo,
        busy_timeout=settings.sqlite_busy_timeout,
    )
    return Dependencies(
        settings=settings,
        db_manager=db_manager,
        listing_manager=ListingManager(db_manager),
        purchase_engine=PurchaseEngine(
            db_manager,
            max_attempts=settings.purchase_max_attempts,
            retry_backoff_ms=settings.purchase_retry_backoff_ms,
        ),
        query_service=TransferQueryService(db_manager),
        team_service=TeamService(db_manager, rng=rng),
    )


def init_dependencies(settings: Optional[Settings] = None) -> Dependencies:
    """Initialize all dependencies. Called once at app startup."""
    global _deps

    if _deps is not None:
        return _deps

    logger.info("Initializing application dependencies...")
    _deps = build_dependencies(settings or get_settings())
    logger.info("All dependencies initialized successfully")
    return _deps


def get_dependencies() -> Dependencies:
    """Get initialized dependencies. Raises if not initialized."""
    if _deps is None:
        raise RuntimeError("Dependencies not initialized. Call init_dependencies() first.")
    return _deps


def reset_dependencies() -> None:
    """Drop the shared instance and close its connections."""
    global _deps

    if _deps is not None:
        _deps.db_manager.dispose()
    _deps = None
