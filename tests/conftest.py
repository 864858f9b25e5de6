"""Shared fixtures: a fresh SQLite file database per test and team builders."""

import itertools
import random
from decimal import Decimal
from types import SimpleNamespace

import pytest

from transfer_market.constants import PlayerPosition
from transfer_market.database import DatabaseManager, Player, Transfer
from transfer_market.services import (
    ListingManager,
    PurchaseEngine,
    TeamService,
    TransferQueryService,
)


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'market.db'}")
    yield manager
    manager.dispose()


@pytest.fixture
def listing_manager(db):
    return ListingManager(db)


@pytest.fixture
def purchase_engine(db):
    return PurchaseEngine(db, retry_backoff_ms=0)


@pytest.fixture
def query_service(db):
    return TransferQueryService(db)


@pytest.fixture
def team_service(db):
    return TeamService(db, rng=random.Random(7))


@pytest.fixture
def make_team(db):
    """Build a team with ``players`` players, each valued 100000."""
    user_ids = itertools.count(1)

    def _make(players=20, budget="5000000", name=None, user_id=None):
        user_id = user_id or next(user_ids)
        with db.transaction() as session:
            db.get_or_create_user(session, user_id, f"user{user_id}@example.com")
            team = db.create_team(session, user_id, name or f"Team {user_id}", Decimal(budget))
            roster = [
                Player(
                    team_id=team.id,
                    name=f"Player {user_id}-{i}",
                    position=PlayerPosition.ALL[i % len(PlayerPosition.ALL)],
                    value=Decimal("100000"),
                )
                for i in range(players)
            ]
            db.add_players(session, roster)
            return SimpleNamespace(
                id=team.id,
                user_id=user_id,
                player_ids=[p.id for p in roster],
            )

    return _make


@pytest.fixture
def team_state(db):
    """Current budget and roster size of a team, read outside any service."""

    def _state(team_id):
        with db.transaction() as session:
            return db.get_team_snapshot(session, team_id)

    return _state


@pytest.fixture
def listing_status(db):
    def _status(listing_id):
        with db.transaction() as session:
            transfer = session.get(Transfer, listing_id)
            return transfer.status if transfer else None

    return _status


@pytest.fixture
def player_team(db):
    def _team(player_id):
        with db.transaction() as session:
            return session.get(Player, player_id).team_id

    return _team


@pytest.fixture
def list_player(listing_manager):
    """List a player of ``team`` and return the listing."""

    def _list(team, player_index=0, price="100000"):
        return listing_manager.create_listing(
            team.id, team.player_ids[player_index], price, team.user_id
        )

    return _list
