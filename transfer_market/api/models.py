"""
Shared API request models.

Pydantic models for request bodies. Money fields accept JSON numbers or
decimal strings and are handed to the services as Decimal.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CreateTransferRequest(BaseModel):
    """Request to put one of the caller's players on the transfer list."""
    player_id: int = Field(..., gt=0)
    asking_price: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "player_id": 42,
                "asking_price": "150000.00"
            }
        }


class BuyPlayerRequest(BaseModel):
    """Request to buy a listed player. Defaults to the caller's own team."""
    team_id: Optional[int] = Field(None, gt=0)


class CreateTeamRequest(BaseModel):
    """Request to create the caller's team."""
    email: Optional[str] = Field(None, max_length=255)
    team_name: Optional[str] = Field(None, min_length=1, max_length=100)
