"""
Listing Service

Puts a team's own players on the transfer list and takes them off again:
- Roster floor check at listing time
- One PENDING listing per player
- Cancellation of PENDING listings only
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Union

from sqlalchemy.exc import IntegrityError

from ..database.crud import DatabaseManager
from ..errors import ForbiddenError, NotFoundError, ValidationRejectedError
from ..schemas import Listing
from .validation import ensure_can_sell, parse_asking_price

logger = logging.getLogger(__name__)


class ListingManager:
    """Creates and cancels transfer listings."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def create_listing(
        self,
        seller_team_id: int,
        player_id: int,
        asking_price: Union[Decimal, str, int, float],
        caller_user_id: int,
    ) -> Listing:
        """
        List one of the caller's players at ``asking_price``.

        Raises:
            ValidationRejectedError: bad price, roster at or below the floor,
                or the player already has a PENDING listing
            NotFoundError: team missing, or player not on the team
            ForbiddenError: team belongs to another user
        """
        price = parse_asking_price(asking_price)

        with self.db.transaction() as session:
            team = self.db.get_team(session, seller_team_id)
            if team is None:
                raise NotFoundError("Team not found")
            if team.user_id != caller_user_id:
                raise ForbiddenError("You can only list players from your own team")

            player = self.db.get_player(session, player_id)
            if player is None or player.team_id != team.id:
                raise NotFoundError("Player not found in your team")

            ensure_can_sell(
                self.db.count_roster(session, team.id),
                "Team has minimum number of players (15). Cannot add players to transfer list.",
            )

            if self.db.find_pending_listing(session, player_id) is not None:
                raise ValidationRejectedError("Player is already in the transfer list")

            try:
                transfer = self.db.insert_listing(session, player_id, team.id, price)
            except IntegrityError:
                # A concurrent insert won the partial unique index
                raise ValidationRejectedError("Player is already in the transfer list")

            listing = Listing.model_validate(transfer)

        logger.info(f"Player {player_id} added to transfer list with price {price}")
        return listing

    def cancel_listing(self, listing_id: int, caller_team_id: int, caller_user_id: int) -> Dict[str, Any]:
        """
        Remove a PENDING listing owned by the caller's team.

        Raises:
            NotFoundError: listing or team missing
            ForbiddenError: team or listing belongs to someone else
            ValidationRejectedError: listing already completed
        """
        with self.db.transaction() as session:
            team = self.db.get_team(session, caller_team_id)
            if team is None:
                raise NotFoundError("Team not found")
            if team.user_id != caller_user_id:
                raise ForbiddenError("You can only remove transfers from your own team")

            transfer = self.db.get_listing(session, listing_id)
            if transfer is None:
                raise NotFoundError("Transfer not found")
            if transfer.team_id != team.id:
                raise ForbiddenError("You can only remove transfers from your own team")

            if not self.db.delete_listing(session, listing_id):
                raise ValidationRejectedError("Can only remove pending transfers")

        logger.info(f"Transfer {listing_id} removed from transfer list")
        return {"message": "Transfer removed successfully", "transfer_id": listing_id}
