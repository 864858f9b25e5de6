"""
Health check endpoint.
"""

import logging
from datetime import datetime

from fastapi import APIRouter

from ...services.dependencies import get_dependencies

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check():
    """Report service status and database connectivity."""
    deps = get_dependencies()
    database_ok = deps.db_manager.ping()
    return {
        "status": "ok" if database_ok else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "service": "transfer-market",
        "database": "connected" if database_ok else "disconnected",
    }
