"""
Caller identity.

Authentication happens upstream; the gateway forwards the authenticated
user id in the X-User-Id header.
"""

from typing import Optional

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> int:
    """FastAPI dependency returning the authenticated user id."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    return user_id
