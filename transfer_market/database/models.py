"""
Database Models

SQLAlchemy models for users, teams, players and transfer listings.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import (
    BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String,
    TypeDecorator, create_engine, event, text
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from ..constants import MONEY_SCALE, PlayerPosition, TransferStatus

Base = declarative_base()

_MONEY_UNIT = Decimal(10) ** MONEY_SCALE


class Money(TypeDecorator):
    """
    Exact currency column.

    Values are stored as integer ten-thousandths of a unit so that
    SQL-side increments and decrements never go through binary floats,
    whatever the backing engine.
    """
    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        try:
            minor = Decimal(str(value)) * _MONEY_UNIT
        except InvalidOperation:
            raise ValueError(f"Invalid money amount: {value!r}")
        if minor != minor.to_integral_value():
            raise ValueError(
                f"Money amount {value} has more than {MONEY_SCALE} decimal places"
            )
        return int(minor)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)) / _MONEY_UNIT


class User(Base):
    """Owner of exactly one team. Credentials live with the auth provider."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    team = relationship("Team", back_populates="user", uselist=False)


class Team(Base):
    """A user's roster and budget."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    budget = Column(Money, nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="team")
    players = relationship("Player", back_populates="team")
    transfers = relationship("Transfer", back_populates="team")

    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_team_budget_non_negative"),
    )

    def __repr__(self):
        return f"<Team(id={self.id}, name={self.name!r}, budget={self.budget})>"


class Player(Base):
    """A tradeable player. Ownership is the single team_id foreign key."""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    position = Column(String(20), nullable=False)  # PlayerPosition.ALL
    value = Column(Money, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    team = relationship("Team", back_populates="players")
    transfers = relationship("Transfer", back_populates="player")

    __table_args__ = (
        CheckConstraint(
            "position IN (" + ", ".join(f"'{p}'" for p in PlayerPosition.ALL) + ")",
            name="ck_player_position",
        ),
    )

    def __repr__(self):
        return f"<Player(id={self.id}, team_id={self.team_id}, position={self.position})>"


class Transfer(Base):
    """A transfer listing: PENDING until bought, then COMPLETED for good."""
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)  # seller

    # Asking price; buyers pay 95% of it
    price = Column(Money, nullable=False)

    status = Column(String(20), nullable=False, default=TransferStatus.PENDING)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    player = relationship("Player", back_populates="transfers")
    team = relationship("Team", back_populates="transfers")

    __table_args__ = (
        # At most one PENDING listing per player
        Index(
            "uq_transfers_pending_player",
            "player_id",
            unique=True,
            postgresql_where=text(f"status = '{TransferStatus.PENDING}'"),
            sqlite_where=text(f"status = '{TransferStatus.PENDING}'"),
        ),
        Index("ix_transfers_status_created", "status", "created_at"),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in TransferStatus.ALL) + ")",
            name="ck_transfer_status",
        ),
        CheckConstraint("price > 0", name="ck_transfer_price_positive"),
        # Deleted listing ids must never be handed out again
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<Transfer(id={self.id}, player_id={self.player_id}, status={self.status})>"


def _configure_sqlite(engine) -> None:
    """
    Make pysqlite transactions serializable.

    The driver normally defers BEGIN until the first write, which lets
    reads escape the transaction. Taking over BEGIN and issuing
    BEGIN IMMEDIATE holds the write lock from the first statement on.
    Connections opened with the ``read_only`` execution option get a
    plain deferred BEGIN and never take the write lock.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get("read_only"):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_db(
    db_url: str = "sqlite:///transfer_market.db",
    echo: bool = False,
    busy_timeout: float = 5.0,
):
    """
    Initialize the database.

    Args:
        db_url: Database connection URL
        echo: Log every SQL statement
        busy_timeout: Seconds SQLite waits on a locked database

    Returns:
        Tuple of (engine, SessionLocal)
    """
    if db_url.startswith("sqlite"):
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": busy_timeout},
        )
        _configure_sqlite(engine)
    else:
        engine = create_engine(
            db_url,
            echo=echo,
            pool_pre_ping=True,
            isolation_level="SERIALIZABLE",
        )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return engine, SessionLocal
