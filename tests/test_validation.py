"""Tests for price parsing and roster rules."""

from decimal import Decimal

import pytest

from transfer_market.errors import ValidationRejectedError
from transfer_market.services.validation import (
    compute_purchase_price,
    ensure_affordable,
    ensure_can_buy,
    ensure_can_sell,
    parse_asking_price,
)


class TestPurchasePrice:

    def test_95_percent(self):
        assert compute_purchase_price(Decimal("100000")) == Decimal("95000")

    def test_exact_for_fractional_prices(self):
        assert compute_purchase_price(Decimal("33333.33")) == Decimal("31666.6635")
        assert compute_purchase_price(Decimal("0.01")) == Decimal("0.0095")


class TestParseAskingPrice:

    @pytest.mark.parametrize("raw,expected", [
        ("100000", Decimal("100000")),
        (100000, Decimal("100000")),
        ("0.01", Decimal("0.01")),
        (0.1, Decimal("0.1")),
        (Decimal("12.50"), Decimal("12.50")),
    ])
    def test_valid(self, raw, expected):
        assert parse_asking_price(raw) == expected

    @pytest.mark.parametrize("raw", [
        "abc", "", None, True, "NaN", "Infinity", "0", "-5", "0.001", "1e12",
    ])
    def test_rejected(self, raw):
        with pytest.raises(ValidationRejectedError):
            parse_asking_price(raw)


class TestRosterRules:

    def test_floor(self):
        ensure_can_sell(16, "nope")
        with pytest.raises(ValidationRejectedError, match="nope"):
            ensure_can_sell(15, "nope")

    def test_ceiling(self):
        ensure_can_buy(24)
        with pytest.raises(ValidationRejectedError) as exc_info:
            ensure_can_buy(25)
        assert exc_info.value.details["roster_ceiling"] == 25

    def test_affordable(self):
        ensure_affordable(Decimal("95000"), Decimal("95000"))
        with pytest.raises(ValidationRejectedError, match="Insufficient budget"):
            ensure_affordable(Decimal("94999.9999"), Decimal("95000"))
