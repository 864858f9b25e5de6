"""
Mapping of service errors onto HTTP responses.
"""

import logging

from fastapi import HTTPException

from ..errors import ConflictError, TransferMarketError

logger = logging.getLogger(__name__)


def to_http_exception(error: TransferMarketError) -> HTTPException:
    """Convert a service error to an HTTPException carrying its error type."""
    headers = None
    if isinstance(error, ConflictError):
        headers = {"Retry-After": "1"}
    logger.info(f"{error.error_type.value}: {error.message}")
    return HTTPException(status_code=error.status_code, detail=error.to_dict(), headers=headers)
