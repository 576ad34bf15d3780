"""
Error Taxonomy

Domain errors raised by registries and the match engine. Each carries the
HTTP status it maps to; app.main translates them into JSON responses.
"""

from fastapi import status


class CabPoolError(Exception):
    """Base class for domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CabPoolError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(CabPoolError):
    """Entity absent."""

    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(CabPoolError):
    """Caller lacks the required role or membership."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(CabPoolError):
    """Business-rule violation (full, not open, already a member...)."""

    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(CabPoolError):
    """Persistence or transport failure. The message is never shown to clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
