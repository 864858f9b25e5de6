"""
Query Service

Read-only search over PENDING listings.
"""

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import Any, Optional

from ..constants import DEFAULT_PAGE_SIZE, MAX_ASKING_PRICE, MAX_PAGE_SIZE
from ..database.crud import DatabaseManager
from ..errors import ValidationRejectedError
from ..schemas import Listing, ListingPage

logger = logging.getLogger(__name__)


def _parse_bound(value: Any, name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        bound = Decimal(str(value))
    except ArithmeticError:
        raise ValidationRejectedError(f"Invalid {name}: {value!r}")
    if not bound.is_finite() or bound < 0:
        raise ValidationRejectedError(f"{name} must be a non-negative number")
    return bound


def _to_price_grid(bound: Optional[Decimal], rounding: str) -> Optional[Decimal]:
    """Snap a bound onto the two-decimal grid asking prices live on."""
    if bound is None:
        return None
    # Nothing is listed above MAX_ASKING_PRICE
    bound = min(bound, MAX_ASKING_PRICE + 1)
    return bound.quantize(Decimal("0.01"), rounding=rounding)


class TransferQueryService:
    """Filters and paginates the open transfer list."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def list_transfers(
        self,
        team_name: Optional[str] = None,
        player_name: Optional[str] = None,
        min_price: Any = None,
        max_price: Any = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ListingPage:
        """
        Get PENDING listings, newest first.

        Args:
            team_name: Case-insensitive substring of the seller team name
            player_name: Case-insensitive substring of the player name
            min_price: Inclusive lower bound on the asking price
            max_price: Inclusive upper bound on the asking price
            page: 1-based page number
            limit: Page size (1-100)
        """
        if page < 1:
            raise ValidationRejectedError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationRejectedError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        low = _parse_bound(min_price, "min_price")
        high = _parse_bound(max_price, "max_price")
        if low is not None and high is not None and low > high:
            raise ValidationRejectedError("min_price cannot be greater than max_price")
        low = _to_price_grid(low, ROUND_CEILING)
        high = _to_price_grid(high, ROUND_FLOOR)

        team_name = team_name.strip() if team_name else None
        player_name = player_name.strip() if player_name else None

        with self.db.transaction() as session:
            rows, total = self.db.search_pending_listings(
                session,
                team_name=team_name or None,
                player_name=player_name or None,
                min_price=low,
                max_price=high,
                offset=(page - 1) * limit,
                limit=limit,
            )
            items = [Listing.model_validate(row) for row in rows]

        logger.debug(f"Transfer search returned {len(items)} of {total} listings")
        return ListingPage(items=items, total=total, page=page, limit=limit)
