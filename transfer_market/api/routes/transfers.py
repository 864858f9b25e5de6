"""
Transfer list endpoints.

Routes for browsing, listing, cancelling and buying players.
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...errors import TransferMarketError
from ...services.dependencies import get_dependencies
from ..auth import get_current_user_id
from ..errors import to_http_exception
from ..models import BuyPlayerRequest, CreateTransferRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def get_transfers(
    team_name: Optional[str] = None,
    player_name: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
):
    """
    Get PENDING transfers.

    Filters:
    - team_name / player_name: case-insensitive substring match
    - min_price / max_price: inclusive asking price range
    """
    try:
        deps = get_dependencies()
        result = deps.query_service.list_transfers(
            team_name=team_name,
            player_name=player_name,
            min_price=min_price,
            max_price=max_price,
            page=page,
            limit=limit,
        )
        return result.model_dump(mode="json")
    except TransferMarketError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching transfers: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", status_code=201)
def add_player_to_transfer_list(
    request: CreateTransferRequest,
    user_id: int = Depends(get_current_user_id),
):
    """Put one of the caller's players on the transfer list."""
    try:
        deps = get_dependencies()
        team_id = deps.team_service.get_team_id_for_user(user_id)
        listing = deps.listing_manager.create_listing(
            seller_team_id=team_id,
            player_id=request.player_id,
            asking_price=request.asking_price,
            caller_user_id=user_id,
        )
        return listing.model_dump(mode="json")
    except TransferMarketError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating transfer: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{transfer_id}")
def remove_player_from_transfer_list(
    transfer_id: int,
    user_id: int = Depends(get_current_user_id),
):
    """Cancel a PENDING transfer owned by the caller's team."""
    try:
        deps = get_dependencies()
        team_id = deps.team_service.get_team_id_for_user(user_id)
        return deps.listing_manager.cancel_listing(transfer_id, team_id, user_id)
    except TransferMarketError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error removing transfer {transfer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{transfer_id}/buy")
def buy_player(
    transfer_id: int,
    request: Optional[BuyPlayerRequest] = None,
    user_id: int = Depends(get_current_user_id),
):
    """
    Buy a listed player.

    The buyer pays 95% of the asking price, which goes to the seller.
    Returns 409 with a Retry-After header when concurrent purchases kept
    conflicting.
    """
    try:
        deps = get_dependencies()
        team_id = request.team_id if request and request.team_id else None
        if team_id is None:
            team_id = deps.team_service.get_team_id_for_user(user_id)

        result = deps.purchase_engine.purchase(transfer_id, team_id, user_id)
        return {
            "message": "Player purchased successfully",
            **result.model_dump(mode="json"),
        }
    except TransferMarketError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error buying transfer {transfer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
