"""
Application error taxonomy.

Services raise these exceptions; the application exception handler turns
them into the standard response envelope using ``status_code``. Context
keyword arguments are logged but never sent to the client.
"""

from typing import Any, Optional

from fastapi import status


class TusslesError(Exception):
    """Base exception for all expected application failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(TusslesError):
    """Raised when input shape or range is invalid.

    ``fields`` maps each offending field name to a human-readable reason.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        fields: Optional[dict[str, str]] = None,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.fields = fields or {}


class AuthError(TusslesError):
    """Raised for a missing, invalid or expired bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(TusslesError):
    """Raised when the acting user's role does not allow the action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(TusslesError):
    """Raised when a referenced order, company or profile does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateError(TusslesError):
    """Raised when an order is not in the state an operation requires."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, current_status: Optional[str] = None, **context: Any):
        super().__init__(message, current_status=current_status, **context)
        self.current_status = current_status


ConflictError = InvalidStateError


class UpstreamError(TusslesError):
    """Raised when the backend store or object store fails.

    The client only ever sees a generic message; the original detail stays
    in the logs.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    public_message = "Internal server error"
