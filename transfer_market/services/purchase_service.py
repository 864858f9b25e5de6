"""
Purchase Service

Executes a purchase as one serializable unit:
- Re-reads the listing, buyer and seller inside the transaction
- Moves the player and 95% of the asking price between the teams
- Retries the whole unit when the store reports a write conflict

A listing only ever moves PENDING -> COMPLETED, and only once.
"""

import logging
import random
import time
from typing import Optional

from sqlalchemy.exc import DBAPIError

from ..constants import (
    DEFAULT_PURCHASE_MAX_ATTEMPTS,
    DEFAULT_PURCHASE_RETRY_BACKOFF_MS,
    TransferStatus,
)
from ..database.crud import DatabaseManager
from ..errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RetryExhaustedError,
    ValidationRejectedError,
)
from ..schemas import PurchaseResult
from .validation import (
    compute_purchase_price,
    ensure_affordable,
    ensure_can_buy,
    ensure_can_sell,
)

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Transfer is not available"


class PurchaseEngine:
    """Buys listed players on behalf of a team."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        max_attempts: int = DEFAULT_PURCHASE_MAX_ATTEMPTS,
        retry_backoff_ms: int = DEFAULT_PURCHASE_RETRY_BACKOFF_MS,
        rng: Optional[random.Random] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.db = db_manager
        self.max_attempts = max_attempts
        self.retry_backoff_ms = retry_backoff_ms
        self._rng = rng or random.Random()

    def purchase(self, listing_id: int, buyer_team_id: int, caller_user_id: int) -> PurchaseResult:
        """
        Buy the player on ``listing_id`` for ``buyer_team_id``.

        Business-rule failures are raised immediately. Write conflicts
        restart the whole unit up to ``max_attempts`` times.

        Returns:
            PurchaseResult with the price charged and the player moved

        Raises:
            NotFoundError: listing or buyer team missing
            ForbiddenError: buyer team belongs to another user
            ValidationRejectedError: listing not PENDING, self-purchase,
                roster ceiling, insufficient budget, or seller at the floor
            RetryExhaustedError: conflicts on every attempt
        """
        self._prefilter(listing_id)

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = self._purchase_once(listing_id, buyer_team_id, caller_user_id)
            except ConflictError:
                if attempt == self.max_attempts:
                    break
                logger.warning(
                    f"Purchase of transfer {listing_id} conflicted "
                    f"(attempt {attempt}/{self.max_attempts}), retrying"
                )
                self._backoff(attempt)
                continue

            result.attempts = attempt
            logger.info(
                f"Player {result.player_id} bought by team {buyer_team_id} "
                f"for {result.purchase_price}"
            )
            return result

        logger.error(f"Purchase of transfer {listing_id} gave up after {self.max_attempts} attempts")
        raise RetryExhaustedError(self.max_attempts)

    def _prefilter(self, listing_id: int) -> None:
        """Fail fast on listings that are clearly gone. Not trusted for enforcement."""
        try:
            with self.db.get_session(read_only=True) as session:
                transfer = self.db.get_listing(session, listing_id)
                status = transfer.status if transfer is not None else None
        except DBAPIError as e:
            # The purchase unit re-reads everything and reports real failures
            logger.debug(f"Skipping pre-check for transfer {listing_id}: {e}")
            return
        if status is None:
            raise NotFoundError("Transfer not found")
        if status != TransferStatus.PENDING:
            raise ValidationRejectedError(NOT_AVAILABLE)

    def _purchase_once(self, listing_id: int, buyer_team_id: int, caller_user_id: int) -> PurchaseResult:
        with self.db.transaction() as session:
            listing = self.db.get_listing_snapshot(session, listing_id)
            if listing is None:
                raise NotFoundError("Transfer not found")
            if listing.status != TransferStatus.PENDING:
                raise ValidationRejectedError(NOT_AVAILABLE)

            if listing.seller_user_id == caller_user_id:
                raise ValidationRejectedError("Cannot buy your own player")

            buyer = self.db.get_team_snapshot(session, buyer_team_id)
            if buyer is None:
                raise NotFoundError("Team not found")
            if buyer.user_id != caller_user_id:
                raise ForbiddenError("You can only buy players for your own team")
            ensure_can_buy(buyer.roster_size)

            purchase_price = compute_purchase_price(listing.asking_price)
            ensure_affordable(buyer.budget, purchase_price)

            seller_roster = self.db.count_roster(session, listing.seller_team_id)
            ensure_can_sell(
                seller_roster,
                "Seller team has minimum number of players (15). Cannot sell.",
            )

            if not self.db.complete_listing(session, listing_id):
                raise ValidationRejectedError(NOT_AVAILABLE)
            if not self.db.reassign_player(
                session, listing.player_id, listing.seller_team_id, buyer.team_id
            ):
                raise ValidationRejectedError(NOT_AVAILABLE)
            if not self.db.adjust_budget(session, buyer.team_id, -purchase_price):
                raise ValidationRejectedError("Insufficient budget")
            self.db.adjust_budget(session, listing.seller_team_id, purchase_price)

        return PurchaseResult(
            listing_id=listing_id,
            player_id=listing.player_id,
            buyer_team_id=buyer.team_id,
            seller_team_id=listing.seller_team_id,
            purchase_price=purchase_price,
        )

    def _backoff(self, attempt: int) -> None:
        if self.retry_backoff_ms <= 0:
            return
        delay_ms = self.retry_backoff_ms * attempt * (1 + self._rng.random())
        time.sleep(delay_ms / 1000.0)
