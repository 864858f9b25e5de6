"""
Transfer Market Data Models

Pydantic models passed between the store, the services and the API.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer


def display_money(amount: Decimal) -> str:
    """Render an amount with two decimals unless more are significant."""
    cents = amount.quantize(Decimal("0.01"))
    if cents == amount:
        return str(cents)
    return str(amount.normalize())


# Exact in Python, string in JSON
MoneyAmount = Annotated[
    Decimal, PlainSerializer(display_money, return_type=str, when_used="json")
]


class PlayerInfo(BaseModel):
    """A player as seen on a roster or a listing."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    name: str
    position: str  # GOALKEEPER, DEFENDER, MIDFIELDER, FORWARD
    value: MoneyAmount


class TeamSummary(BaseModel):
    """Seller details embedded in listings."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str


class Listing(BaseModel):
    """A transfer listing."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    player_id: int
    team_id: int
    price: MoneyAmount
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    player: Optional[PlayerInfo] = None
    team: Optional[TeamSummary] = None


class ListingSnapshot(BaseModel):
    """Listing state read inside a transaction, with live seller facts."""
    listing_id: int
    player_id: int
    seller_team_id: int
    seller_user_id: int
    seller_roster_size: int
    asking_price: Decimal
    status: str


class TeamSnapshot(BaseModel):
    """Team state read inside a transaction."""
    team_id: int
    user_id: int
    name: str
    budget: Decimal
    roster_size: int


class PurchaseResult(BaseModel):
    """Outcome of a committed purchase."""
    listing_id: int
    player_id: int
    buyer_team_id: int
    seller_team_id: int
    purchase_price: MoneyAmount
    attempts: int = 1


class TeamDetail(BaseModel):
    """A team with its roster and its open listings."""
    id: int
    user_id: int
    name: str
    budget: MoneyAmount
    players: List[PlayerInfo] = Field(default_factory=list)
    listings: List[Listing] = Field(default_factory=list)

    @property
    def roster_size(self) -> int:
        return len(self.players)


class ListingPage(BaseModel):
    """One page of PENDING listings."""
    items: List[Listing]
    total: int
    page: int
    limit: int
