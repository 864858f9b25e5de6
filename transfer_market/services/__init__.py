"""
Services layer for business logic.
"""

from .dependencies import (
    Dependencies,
    build_dependencies,
    get_dependencies,
    init_dependencies,
    reset_dependencies,
)
from .listing_service import ListingManager
from .purchase_service import PurchaseEngine
from .query_service import TransferQueryService
from .team_service import TeamService

__all__ = [
    'Dependencies',
    'build_dependencies',
    'get_dependencies',
    'init_dependencies',
    'reset_dependencies',
    'ListingManager',
    'PurchaseEngine',
    'TransferQueryService',
    'TeamService',
]
