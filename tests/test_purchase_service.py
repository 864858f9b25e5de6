"""Tests for the purchase engine.

Coverage:
- Money and ownership movement on a successful purchase
- Roster floor/ceiling, budget and ownership rules
- Concurrent purchases of one listing
- Conflict retries and retry exhaustion
"""

import threading
from decimal import Decimal

import pytest
from sqlalchemy import text

from transfer_market.constants import TransferStatus
from transfer_market.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RetryExhaustedError,
    ValidationRejectedError,
)
from transfer_market.database import DatabaseManager
from transfer_market.services import PurchaseEngine


class TestPurchase:
    """Successful purchases."""

    def test_reference_scenario(self, make_team, list_player, purchase_engine,
                                team_state, listing_status, player_team):
        """A lists P at 100000; B with 200000 and 20 players buys it."""
        seller = make_team(players=20)
        buyer = make_team(players=20, budget="200000")
        listing = list_player(seller, price="100000")

        result = purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert result.purchase_price == Decimal("95000")
        assert result.player_id == seller.player_ids[0]
        assert result.attempts == 1
        assert team_state(buyer.id).budget == Decimal("105000")
        assert team_state(seller.id).budget == Decimal("5095000")
        assert player_team(seller.player_ids[0]) == buyer.id
        assert listing_status(listing.id) == TransferStatus.COMPLETED

    def test_player_moves_between_rosters(self, make_team, list_player, purchase_engine, team_state):
        seller = make_team(players=18)
        buyer = make_team(players=20)
        listing = list_player(seller)

        purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert team_state(seller.id).roster_size == 17
        assert team_state(buyer.id).roster_size == 21

    def test_no_drift_on_repeated_fractional_trades(self, make_team, list_player, listing_manager,
                                                    purchase_engine, team_state):
        a = make_team(players=20, budget="1000000")
        b = make_team(players=20, budget="1000000")
        asking = "33333.33"
        expected_price = Decimal("31666.6635")
        player_id = a.player_ids[0]
        owner, other = a, b
        budgets = {a.id: Decimal("1000000"), b.id: Decimal("1000000")}

        for _ in range(6):
            listing = listing_manager.create_listing(owner.id, player_id, asking, owner.user_id)
            result = purchase_engine.purchase(listing.id, other.id, other.user_id)

            assert result.purchase_price == expected_price
            budgets[other.id] -= expected_price
            budgets[owner.id] += expected_price
            owner, other = other, owner

        assert team_state(a.id).budget == budgets[a.id]
        assert team_state(b.id).budget == budgets[b.id]
        assert team_state(a.id).budget + team_state(b.id).budget == Decimal("2000000")

    def test_buyer_with_24_players_can_buy(self, make_team, list_player, purchase_engine, team_state):
        seller = make_team(players=20)
        buyer = make_team(players=24)
        listing = list_player(seller)

        purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert team_state(buyer.id).roster_size == 25

    def test_exact_budget_is_enough(self, make_team, list_player, purchase_engine, team_state):
        seller = make_team(players=20)
        buyer = make_team(players=20, budget="95000")
        listing = list_player(seller, price="100000")

        purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert team_state(buyer.id).budget == Decimal("0")


class TestPurchaseRejections:
    """Business rules that stop a purchase without changing anything."""

    def test_buyer_with_25_players_rejected(self, make_team, list_player, purchase_engine,
                                            team_state, listing_status):
        seller = make_team(players=20)
        buyer = make_team(players=25)
        listing = list_player(seller)

        with pytest.raises(ValidationRejectedError, match="maximum number of players"):
            purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert team_state(buyer.id).roster_size == 25
        assert listing_status(listing.id) == TransferStatus.PENDING

    def test_insufficient_budget(self, make_team, list_player, purchase_engine,
                                 team_state, listing_status, player_team):
        seller = make_team(players=20)
        buyer = make_team(players=20, budget="94999.99")
        listing = list_player(seller, price="100000")

        with pytest.raises(ValidationRejectedError, match="Insufficient budget"):
            purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert team_state(buyer.id).budget == Decimal("94999.99")
        assert team_state(seller.id).budget == Decimal("5000000")
        assert player_team(seller.player_ids[0]) == seller.id
        assert listing_status(listing.id) == TransferStatus.PENDING

    def test_cannot_buy_own_player(self, make_team, list_player, purchase_engine):
        seller = make_team(players=20)
        listing = list_player(seller)

        with pytest.raises(ValidationRejectedError, match="Cannot buy your own player"):
            purchase_engine.purchase(listing.id, seller.id, seller.user_id)

    def test_completed_listing_not_available(self, make_team, list_player, purchase_engine):
        seller = make_team(players=20)
        first = make_team(players=20)
        second = make_team(players=20)
        listing = list_player(seller)
        purchase_engine.purchase(listing.id, first.id, first.user_id)

        with pytest.raises(ValidationRejectedError, match="Transfer is not available"):
            purchase_engine.purchase(listing.id, second.id, second.user_id)

    def test_cancelled_listing_not_found(self, make_team, list_player, listing_manager, purchase_engine):
        seller = make_team(players=20)
        buyer = make_team(players=20)
        listing = list_player(seller)
        listing_manager.cancel_listing(listing.id, seller.id, seller.user_id)

        with pytest.raises(NotFoundError):
            purchase_engine.purchase(listing.id, buyer.id, buyer.user_id)

    def test_unknown_listing(self, make_team, purchase_engine):
        buyer = make_team(players=20)

        with pytest.raises(NotFoundError, match="Transfer not found"):
            purchase_engine.purchase(9999, buyer.id, buyer.user_id)

    def test_unknown_buyer_team(self, make_team, list_player, purchase_engine):
        seller = make_team(players=20)
        listing = list_player(seller)

        with pytest.raises(NotFoundError, match="Team not found"):
            purchase_engine.purchase(listing.id, 9999, 42)

    def test_buying_for_someone_elses_team(self, make_team, list_player, purchase_engine, team_state):
        seller = make_team(players=20)
        victim = make_team(players=20)
        caller = make_team(players=20)
        listing = list_player(seller)

        with pytest.raises(ForbiddenError):
            purchase_engine.purchase(listing.id, victim.id, caller.user_id)

        assert team_state(victim.id).budget == Decimal("5000000")

    def test_seller_floor_rechecked_at_purchase_time(self, make_team, list_player, purchase_engine,
                                                     team_state, listing_status):
        """Both listings were valid when created; the second sale would drop the seller below 15."""
        seller = make_team(players=16)
        buyer = make_team(players=20)
        first = list_player(seller, player_index=0)
        second = list_player(seller, player_index=1)

        purchase_engine.purchase(first.id, buyer.id, buyer.user_id)
        assert team_state(seller.id).roster_size == 15

        with pytest.raises(ValidationRejectedError, match="Seller team has minimum number of players"):
            purchase_engine.purchase(second.id, buyer.id, buyer.user_id)

        assert team_state(seller.id).roster_size == 15
        assert listing_status(second.id) == TransferStatus.PENDING


class TestConcurrentPurchases:
    """Several buyers racing for one listing."""

    def test_only_one_buyer_wins(self, db, make_team, list_player, team_state, listing_status):
        seller = make_team(players=20)
        buyers = [make_team(players=20, budget="200000") for _ in range(5)]
        listing = list_player(seller, price="100000")
        engine = PurchaseEngine(db, max_attempts=5, retry_backoff_ms=5)

        barrier = threading.Barrier(len(buyers))
        successes, failures = [], []

        def attempt(buyer):
            barrier.wait()
            try:
                successes.append(engine.purchase(listing.id, buyer.id, buyer.user_id))
            except Exception as e:
                failures.append(e)

        threads = [threading.Thread(target=attempt, args=(b,)) for b in buyers]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert len(successes) == 1
        assert len(failures) == len(buyers) - 1
        for error in failures:
            assert isinstance(error, ValidationRejectedError)
            assert not isinstance(error, ConflictError)
            assert error.message == "Transfer is not available"

        winner = successes[0].buyer_team_id
        assert listing_status(listing.id) == TransferStatus.COMPLETED
        assert team_state(seller.id).budget == Decimal("5095000")
        for buyer in buyers:
            expected = Decimal("105000") if buyer.id == winner else Decimal("200000")
            assert team_state(buyer.id).budget == expected


class TestConflictRetries:
    """Store conflicts are retried and never reported as business-rule failures."""

    def test_conflict_then_success(self, db, make_team, list_player, team_state, monkeypatch):
        seller = make_team(players=20)
        buyer = make_team(players=20, budget="200000")
        listing = list_player(seller)
        engine = PurchaseEngine(db, max_attempts=3, retry_backoff_ms=0)

        real_once = engine._purchase_once
        calls = {"n": 0}

        def flaky(*args):
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConflictError("Concurrent update detected")
            return real_once(*args)

        monkeypatch.setattr(engine, "_purchase_once", flaky)

        result = engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert result.attempts == 2
        assert team_state(buyer.id).budget == Decimal("105000")

    def test_retry_exhausted(self, db, make_team, list_player, team_state, listing_status, monkeypatch):
        seller = make_team(players=20)
        buyer = make_team(players=20, budget="200000")
        listing = list_player(seller)
        engine = PurchaseEngine(db, max_attempts=3, retry_backoff_ms=0)
        calls = {"n": 0}

        def always_conflicts(*args):
            calls["n"] += 1
            raise ConflictError("Concurrent update detected")

        monkeypatch.setattr(engine, "_purchase_once", always_conflicts)

        with pytest.raises(RetryExhaustedError) as exc_info:
            engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert calls["n"] == 3
        assert exc_info.value.attempts == 3
        assert not isinstance(exc_info.value, ValidationRejectedError)
        assert listing_status(listing.id) == TransferStatus.PENDING
        assert team_state(buyer.id).budget == Decimal("200000")

    def test_rejections_are_not_retried(self, db, make_team, list_player, monkeypatch):
        seller = make_team(players=20)
        buyer = make_team(players=25)
        listing = list_player(seller)
        engine = PurchaseEngine(db, max_attempts=3, retry_backoff_ms=0)

        real_once = engine._purchase_once
        calls = {"n": 0}

        def counting(*args):
            calls["n"] += 1
            return real_once(*args)

        monkeypatch.setattr(engine, "_purchase_once", counting)

        with pytest.raises(ValidationRejectedError):
            engine.purchase(listing.id, buyer.id, buyer.user_id)

        assert calls["n"] == 1

    def test_max_attempts_must_be_positive(self, db):
        with pytest.raises(ValueError):
            PurchaseEngine(db, max_attempts=0)


class TestPrecheck:
    """The fail-fast listing read does not compete for the write lock."""

    def test_precheck_runs_while_a_writer_holds_the_lock(self, tmp_path):
        db = DatabaseManager(f"sqlite:///{tmp_path / 'locked.db'}", busy_timeout=0.2)
        engine = PurchaseEngine(db, retry_backoff_ms=0)
        try:
            with db.transaction() as session:
                session.execute(text("SELECT 1"))
                # Only a read that skips BEGIN IMMEDIATE can see the listing is missing
                with pytest.raises(NotFoundError):
                    engine._prefilter(9999)
        finally:
            db.dispose()

    def test_writer_lock_blocks_the_purchase_unit(self, tmp_path):
        db = DatabaseManager(f"sqlite:///{tmp_path / 'locked.db'}", busy_timeout=0.2)
        try:
            with db.transaction() as session:
                session.execute(text("SELECT 1"))
                with pytest.raises(ConflictError):
                    with db.transaction() as other:
                        other.execute(text("SELECT 1"))
        finally:
            db.dispose()
