"""
Shared validation helpers for listing and purchase rules.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from ..constants import (
    ASKING_PRICE_DECIMALS,
    MAX_ASKING_PRICE,
    PURCHASE_PRICE_FACTOR,
    ROSTER_CEILING,
    ROSTER_FLOOR,
)
from ..errors import ValidationRejectedError


def parse_asking_price(value: Any) -> Decimal:
    """
    Parse an asking price into an exact Decimal.

    Floats are converted through their repr so 0.1 stays 0.1.

    Raises:
        ValidationRejectedError: not a number, not positive, or more than
            two decimal places
    """
    if isinstance(value, bool):
        raise ValidationRejectedError(f"Invalid asking price: {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationRejectedError(f"Invalid asking price: {value!r}")

    if not price.is_finite():
        raise ValidationRejectedError(f"Invalid asking price: {value!r}")
    if price <= 0:
        raise ValidationRejectedError("Asking price must be positive")
    if price > MAX_ASKING_PRICE:
        raise ValidationRejectedError(f"Asking price cannot exceed {MAX_ASKING_PRICE}")
    if price != price.quantize(Decimal(1).scaleb(-ASKING_PRICE_DECIMALS)):
        raise ValidationRejectedError(
            f"Asking price cannot have more than {ASKING_PRICE_DECIMALS} decimal places"
        )
    return price


def compute_purchase_price(asking_price: Decimal) -> Decimal:
    """The amount a buyer pays and the seller receives: 95% of the asking price."""
    return asking_price * PURCHASE_PRICE_FACTOR


def ensure_can_sell(roster_size: int, message: str) -> None:
    """Teams at or below the roster floor cannot give up a player."""
    if roster_size <= ROSTER_FLOOR:
        raise ValidationRejectedError(
            message,
            details={"roster_size": roster_size, "roster_floor": ROSTER_FLOOR},
        )


def ensure_can_buy(roster_size: int) -> None:
    """Teams at the roster ceiling cannot take on another player."""
    if roster_size >= ROSTER_CEILING:
        raise ValidationRejectedError(
            f"Team already has maximum number of players ({ROSTER_CEILING})",
            details={"roster_size": roster_size, "roster_ceiling": ROSTER_CEILING},
        )


def ensure_affordable(budget: Decimal, purchase_price: Decimal) -> None:
    if budget < purchase_price:
        raise ValidationRejectedError(
            "Insufficient budget",
            details={"budget": str(budget), "purchase_price": str(purchase_price)},
        )
