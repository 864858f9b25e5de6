"""
Transfer Market Errors

Typed exceptions raised by the store and services layers. Routes translate
them to HTTP responses; nothing below the API layer knows about HTTP beyond
the status code carried on each class.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """Standard error types shared by the services and the API."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    VALIDATION_REJECTED = "validation_rejected"
    CONFLICT = "conflict"
    RETRY_EXHAUSTED = "retry_exhausted"
    INFRASTRUCTURE_ERROR = "infrastructure_error"


class TransferMarketError(Exception):
    """Base class for every error surfaced to callers."""

    error_type: ErrorType = ErrorType.INFRASTRUCTURE_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured payload for API responses."""
        payload = {"error_type": self.error_type.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(TransferMarketError):
    """Entity absent or not visible to the caller."""
    error_type = ErrorType.NOT_FOUND
    status_code = 404


class ForbiddenError(TransferMarketError):
    """Entity exists but belongs to another user."""
    error_type = ErrorType.FORBIDDEN
    status_code = 403


class ValidationRejectedError(TransferMarketError):
    """A business rule rejected the request. Deterministic, never retried."""
    error_type = ErrorType.VALIDATION_REJECTED
    status_code = 400


class ConflictError(TransferMarketError):
    """The store detected a concurrent update. Safe to retry."""
    error_type = ErrorType.CONFLICT
    status_code = 409


class RetryExhaustedError(ConflictError):
    """Conflicts persisted through every allowed attempt."""
    error_type = ErrorType.RETRY_EXHAUSTED

    def __init__(self, attempts: int):
        super().__init__(
            "Transfer is temporarily unavailable, please retry the request",
            details={"attempts": attempts},
        )
        self.attempts = attempts


class InfrastructureError(TransferMarketError):
    """The store is unreachable or failed outside of a conflict."""
    error_type = ErrorType.INFRASTRUCTURE_ERROR
    status_code = 503
