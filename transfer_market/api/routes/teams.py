"""
Team endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...errors import TransferMarketError
from ...services.dependencies import get_dependencies
from ..auth import get_current_user_id
from ..errors import to_http_exception
from ..models import CreateTeamRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
def create_team(
    request: Optional[CreateTeamRequest] = None,
    user_id: int = Depends(get_current_user_id),
):
    """
    Create the caller's team with a generated 20-player roster.
    Calling it again returns the existing team.
    """
    try:
        deps = get_dependencies()
        team = deps.team_service.create_team_for_user(
            user_id,
            email=request.email if request else None,
            team_name=request.team_name if request else None,
        )
        return team.model_dump(mode="json")
    except TransferMarketError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating team for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/my-team")
def get_my_team(user_id: int = Depends(get_current_user_id)):
    """Get the caller's team, roster and open listings."""
    try:
        deps = get_dependencies()
        team = deps.team_service.get_team_for_user(user_id)
        return team.model_dump(mode="json")
    except TransferMarketError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching team for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
