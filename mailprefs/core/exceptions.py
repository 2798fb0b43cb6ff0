"""Custom exception classes for the preference centre."""

from typing import Optional

from fastapi import HTTPException, status


class PreferenceCentreError(Exception):
    """Base exception for the preference centre."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(PreferenceCentreError):
    """Raised when admin authentication fails. Answered with a Basic challenge."""

    def __init__(self, message: str = "Unauthorized", realm: str = "Admin Area"):
        self.realm = realm
        super().__init__(message)


class ValidationError(PreferenceCentreError):
    """Raised when input validation fails."""
    pass


class StorageError(PreferenceCentreError):
    """Raised when the audit store cannot be read or written."""
    pass


class ExternalAPIError(PreferenceCentreError):
    """Raised when a Track API call fails (non-2xx, transport or encoding)."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        self.identifier = identifier
        self.url = url
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class RelationshipMoveError(ExternalAPIError):
    """Raised when a list move fails part-way.

    ``removed`` is True when the source relationship was already deleted,
    leaving the customer in neither list until the move is re-driven.
    """

    def __init__(self, message: str, removed: bool = False, **kwargs):
        self.removed = removed
        super().__init__(message, **kwargs)


# HTTP exception shortcuts
def bad_request(detail: str = "Bad request") -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def internal_error(detail: str = "Internal Server Error") -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
