"""
Custom Exceptions

Centralized exception definitions for better error handling.
FastAPI converts these to HTTP responses; the handlers in main.py render
them as {"success": false, "error": detail}.
"""
from fastapi import HTTPException, status


class TenantNotFoundError(HTTPException):
    """Raised when tenant cannot be found."""

    def __init__(self, tenant_id: str = ""):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'Tenant "{tenant_id}" not found' if tenant_id else "Tenant not found"
        )


class TenantAlreadyExistsError(HTTPException):
    """Raised when registering a tenant id that is already taken."""

    def __init__(self, tenant_id: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f'Tenant "{tenant_id}" already exists'
        )


class EventNotFoundError(HTTPException):
    """Raised when a calendar event cannot be found in a tenant."""

    def __init__(self, event_id: str = "", tenant_id: str = "", detail: str = ""):
        if not detail:
            detail = f'Event "{event_id}" not found for tenant "{tenant_id}"'
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class AuthenticationError(HTTPException):
    """Raised when authentication fails."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidInputError(HTTPException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class InvalidRequestFormatError(InvalidInputError):
    """
    Raised when a calendar-event payload matches none of the accepted shapes.

    Carries the list of accepted formats so the handler can echo them back.
    """

    def __init__(self, expected_formats: list):
        super().__init__("Invalid request format")
        self.expected_formats = expected_formats


class StoreWriteError(Exception):
    """Raised when the tenant store cannot be persisted to disk."""
