"""
Constants for the Transfer Market

Centralized constants to avoid magic numbers and strings throughout the codebase.
"""

from decimal import Decimal


class PlayerPosition:
    """Player positions stored on the players table."""
    GOALKEEPER = "GOALKEEPER"
    DEFENDER = "DEFENDER"
    MIDFIELDER = "MIDFIELDER"
    FORWARD = "FORWARD"

    ALL = (GOALKEEPER, DEFENDER, MIDFIELDER, FORWARD)


class TransferStatus:
    """Lifecycle states of a transfer listing."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"

    ALL = (PENDING, COMPLETED)


# Roster constraints
ROSTER_FLOOR = 15  # Teams at or below this size cannot sell or list
ROSTER_CEILING = 25  # Teams at or above this size cannot buy

# Every purchase is charged at 95% of the asking price
PURCHASE_PRICE_FACTOR = Decimal("0.95")

# Money precision
MONEY_SCALE = 4  # Stored as integer ten-thousandths
ASKING_PRICE_DECIMALS = 2
MAX_ASKING_PRICE = Decimal("100000000000")

# New team defaults
INITIAL_BUDGET = Decimal("5000000")

# (position, count, min value, max value)
ROSTER_TEMPLATE = (
    (PlayerPosition.GOALKEEPER, 3, 50000, 200000),
    (PlayerPosition.DEFENDER, 6, 30000, 150000),
    (PlayerPosition.MIDFIELDER, 6, 40000, 180000),
    (PlayerPosition.FORWARD, 5, 50000, 250000),
)

# Listing query pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Purchase retry policy
DEFAULT_PURCHASE_MAX_ATTEMPTS = 3
DEFAULT_PURCHASE_RETRY_BACKOFF_MS = 25
