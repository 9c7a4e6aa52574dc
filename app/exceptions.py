"""
Domain exceptions for the messaging backend.

Services raise these; the REST layer maps them to status codes and a
``{"success": false, "message": ...}`` body, the socket gateway turns them
into ``message:error`` events for the originating connection.
"""

from typing import Any, Dict, Optional

from fastapi import status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_response_body(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(DomainException):
    """Malformed input: empty or oversized content, unknown type, missing selector."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DomainException):
    """Missing, invalid or expired identity token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(DomainException):
    """Requester is not a participant of the requested conversation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainException):
    """Unknown receiver or conversation participant."""

    status_code = status.HTTP_404_NOT_FOUND
