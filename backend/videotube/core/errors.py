"""
Centralized error handling for service/API failures.
Domain exceptions plus a reusable mapper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500

MSG_INTERNAL_ERROR = "Something went wrong"


class VideoTubeError(Exception):
    """Base class for errors raised by the service layer."""

    default_message = "VideoTube error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VideoTubeError):
    """Input rejected before anything is persisted."""

    default_message = "Validation error"


class NotFoundError(VideoTubeError):
    """Record missing, or not owned by the caller."""

    default_message = "Resource not found"


class AuthError(VideoTubeError):
    """Missing, invalid or expired access token."""

    default_message = "Unauthorized request"


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code)
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

# First match wins; order subclasses before base classes.
SERVICE_ERROR_RULES: list[tuple[type[VideoTubeError], int]] = [
    (ValidationError, STATUS_BAD_REQUEST),
    (NotFoundError, STATUS_NOT_FOUND),
    (AuthError, STATUS_UNAUTHORIZED),
]


def service_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a service call into an HTTPException.
    Known domain errors keep their message; anything else becomes a generic 500
    so store internals never leak into responses.
    """
    for exc_type, status_code in SERVICE_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=MSG_INTERNAL_ERROR)
