"""
Database CRUD Operations

Transactional store for teams, players and transfer listings. Every
helper that takes a ``session`` is meant to run inside
``DatabaseManager.transaction()`` so that the reads backing an invariant
and the writes that depend on them share one serializable unit.
"""

import logging
import os
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, joinedload

from ..constants import TransferStatus
from ..errors import ConflictError, InfrastructureError
from ..schemas import ListingSnapshot, TeamSnapshot
from .models import Player, Team, Transfer, User, init_db

logger = logging.getLogger(__name__)

# SQLSTATEs for serialization_failure and deadlock_detected
_CONFLICT_SQLSTATES = {"40001", "40P01"}


def is_serialization_failure(error: DBAPIError) -> bool:
    """True when the driver reports a write conflict rather than a real failure."""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _CONFLICT_SQLSTATES:
        return True
    # SQLite surfaces lock contention as OperationalError("database is locked")
    return isinstance(error, OperationalError) and "locked" in str(orig).lower()


def _roster_size(team_column):
    return (
        select(func.count(Player.id))
        .where(Player.team_id == team_column)
        .scalar_subquery()
    )


class DatabaseManager:
    """Manager for database operations."""

    def __init__(
        self,
        db_url: Optional[str] = None,
        echo: bool = False,
        busy_timeout: float = 5.0,
    ):
        """
        Initialize database manager.

        Args:
            db_url: Database connection URL (defaults to DATABASE_URL env var or sqlite:///transfer_market.db)
            echo: Log every SQL statement
            busy_timeout: Seconds SQLite waits for a competing writer
        """
        if db_url is None:
            db_url = os.getenv("DATABASE_URL", "sqlite:///transfer_market.db")

        if db_url.startswith("sqlite"):
            logger.warning("Using SQLite database - writers are serialized with BEGIN IMMEDIATE")
        elif db_url.startswith("postgresql") or db_url.startswith("postgres"):
            logger.info("Using PostgreSQL database at SERIALIZABLE isolation")
        else:
            logger.info(f"Using database: {db_url.split('://')[0] if '://' in db_url else 'unknown'}")

        self.db_url = db_url
        self.engine, self.SessionLocal = init_db(db_url, echo=echo, busy_timeout=busy_timeout)

    def get_session(self, read_only: bool = False) -> Session:
        """
        Get a new database session.

        A ``read_only`` session starts its transaction without taking the
        SQLite write lock. Use it only for advisory reads; anything that
        backs a write belongs in ``transaction()``.
        """
        session = self.SessionLocal()
        if read_only:
            session.connection(execution_options={"read_only": True})
        return session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run a block as one all-or-nothing unit.

        Commits when the block exits cleanly and rolls back on any
        exception. Write conflicts detected by the engine are raised as
        ConflictError; other driver failures as InfrastructureError.
        Integrity violations and domain errors propagate unchanged.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except DBAPIError as e:
            session.rollback()
            if is_serialization_failure(e):
                logger.warning(f"Transaction conflict: {e.orig}")
                raise ConflictError("Concurrent update detected") from e
            logger.error(f"Database failure: {e}", exc_info=True)
            raise InfrastructureError("Database is unavailable") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()

    def ping(self) -> bool:
        """Check database connectivity."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except DBAPIError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    # ==================== Teams ====================

    @staticmethod
    def get_team(session: Session, team_id: int) -> Optional[Team]:
        return session.get(Team, team_id)

    @staticmethod
    def get_team_by_user(session: Session, user_id: int) -> Optional[Team]:
        return session.execute(
            select(Team).where(Team.user_id == user_id)
        ).scalar_one_or_none()

    @staticmethod
    def get_team_snapshot(session: Session, team_id: int) -> Optional[TeamSnapshot]:
        """Team budget and live roster size."""
        row = session.execute(
            select(Team, _roster_size(Team.id).label("roster_size"))
            .where(Team.id == team_id)
        ).first()
        if row is None:
            return None
        team, roster_size = row
        return TeamSnapshot(
            team_id=team.id,
            user_id=team.user_id,
            name=team.name,
            budget=team.budget,
            roster_size=roster_size,
        )

    @staticmethod
    def count_roster(session: Session, team_id: int) -> int:
        return session.execute(
            select(func.count(Player.id)).where(Player.team_id == team_id)
        ).scalar_one()

    @staticmethod
    def adjust_budget(session: Session, team_id: int, delta: Decimal) -> bool:
        """
        Add ``delta`` to a team budget in SQL.

        Negative deltas only apply while the budget covers them, so the
        budget can never go below zero. Returns False when no row changed.
        """
        stmt = update(Team).where(Team.id == team_id)
        if delta < 0:
            stmt = stmt.where(Team.budget >= -delta)
        result = session.execute(
            stmt.values(budget=Team.budget + delta),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount == 1

    @staticmethod
    def get_or_create_user(session: Session, user_id: int, email: Optional[str] = None) -> User:
        user = session.get(User, user_id)
        if user is None:
            user = User(id=user_id, email=email)
            session.add(user)
            session.flush()
        return user

    @staticmethod
    def create_team(session: Session, user_id: int, name: str, budget: Decimal) -> Team:
        team = Team(user_id=user_id, name=name, budget=budget)
        session.add(team)
        session.flush()
        return team

    # ==================== Players ====================

    @staticmethod
    def get_player(session: Session, player_id: int) -> Optional[Player]:
        return session.get(Player, player_id)

    @staticmethod
    def get_team_players(session: Session, team_id: int) -> List[Player]:
        return list(session.execute(
            select(Player).where(Player.team_id == team_id).order_by(Player.id)
        ).scalars())

    @staticmethod
    def add_players(session: Session, players: List[Player]) -> None:
        session.add_all(players)
        session.flush()

    @staticmethod
    def reassign_player(session: Session, player_id: int, from_team_id: int, to_team_id: int) -> bool:
        """Move a player between teams if it is still owned by ``from_team_id``."""
        result = session.execute(
            update(Player)
            .where(Player.id == player_id, Player.team_id == from_team_id)
            .values(team_id=to_team_id),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount == 1

    # ==================== Transfers ====================

    @staticmethod
    def get_listing(session: Session, listing_id: int) -> Optional[Transfer]:
        return session.get(Transfer, listing_id)

    @staticmethod
    def get_listing_snapshot(session: Session, listing_id: int) -> Optional[ListingSnapshot]:
        """Listing with its seller's owner and live roster size."""
        row = session.execute(
            select(Transfer, Team.user_id, _roster_size(Team.id).label("roster_size"))
            .join(Team, Transfer.team_id == Team.id)
            .where(Transfer.id == listing_id)
        ).first()
        if row is None:
            return None
        transfer, seller_user_id, roster_size = row
        return ListingSnapshot(
            listing_id=transfer.id,
            player_id=transfer.player_id,
            seller_team_id=transfer.team_id,
            seller_user_id=seller_user_id,
            seller_roster_size=roster_size,
            asking_price=transfer.price,
            status=transfer.status,
        )

    @staticmethod
    def find_pending_listing(session: Session, player_id: int) -> Optional[Transfer]:
        return session.execute(
            select(Transfer).where(
                Transfer.player_id == player_id,
                Transfer.status == TransferStatus.PENDING,
            )
        ).scalars().first()

    @staticmethod
    def get_team_listings(session: Session, team_id: int, status: Optional[str] = None) -> List[Transfer]:
        stmt = select(Transfer).where(Transfer.team_id == team_id)
        if status:
            stmt = stmt.where(Transfer.status == status)
        return list(session.execute(stmt.order_by(Transfer.created_at.desc(), Transfer.id.desc())).scalars())

    @staticmethod
    def insert_listing(session: Session, player_id: int, team_id: int, price: Decimal) -> Transfer:
        """Insert a PENDING listing. Raises IntegrityError on a duplicate PENDING row."""
        transfer = Transfer(
            player_id=player_id,
            team_id=team_id,
            price=price,
            status=TransferStatus.PENDING,
        )
        session.add(transfer)
        session.flush()
        return transfer

    @staticmethod
    def delete_listing(session: Session, listing_id: int) -> bool:
        """Delete a listing only while it is still PENDING."""
        result = session.execute(
            delete(Transfer).where(
                Transfer.id == listing_id,
                Transfer.status == TransferStatus.PENDING,
            ),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount == 1

    @staticmethod
    def complete_listing(session: Session, listing_id: int) -> bool:
        """Compare-and-set PENDING -> COMPLETED. False if someone got there first."""
        result = session.execute(
            update(Transfer)
            .where(
                Transfer.id == listing_id,
                Transfer.status == TransferStatus.PENDING,
            )
            .values(status=TransferStatus.COMPLETED, updated_at=datetime.utcnow()),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount == 1

    @staticmethod
    def search_pending_listings(
        session: Session,
        team_name: Optional[str] = None,
        player_name: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Transfer], int]:
        """PENDING listings matching the filters, newest first, plus the total count."""
        stmt = (
            select(Transfer)
            .join(Team, Transfer.team_id == Team.id)
            .join(Player, Transfer.player_id == Player.id)
            .where(Transfer.status == TransferStatus.PENDING)
        )
        if team_name:
            stmt = stmt.where(Team.name.icontains(team_name, autoescape=True))
        if player_name:
            stmt = stmt.where(Player.name.icontains(player_name, autoescape=True))
        if min_price is not None:
            stmt = stmt.where(Transfer.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Transfer.price <= max_price)

        total = session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        rows = session.execute(
            stmt.options(joinedload(Transfer.player), joinedload(Transfer.team))
            .order_by(Transfer.created_at.desc(), Transfer.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return list(rows), total
