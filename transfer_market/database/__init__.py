"""Database module."""

from .models import Base, Money, Player, Team, Transfer, User
from .crud import DatabaseManager, is_serialization_failure

__all__ = [
    "Base", "Money", "Player", "Team", "Transfer", "User",
    "DatabaseManager", "is_serialization_failure",
]
