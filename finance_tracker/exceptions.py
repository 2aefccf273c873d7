"""
Custom exceptions
"""
from __future__ import annotations

from typing import Dict, Optional

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
MISSING_TOKEN_MESSAGE = "Authentication token missing. Please login again."


class FinanceTrackerError(Exception):
    """Base class for every error raised by the tracker."""
    pass


class AuthenticationError(FinanceTrackerError):
    """No usable session (missing token or user)."""

    def __init__(self, message: str = MISSING_TOKEN_MESSAGE):
        super().__init__(message)
        self.message = message


class ApiError(FinanceTrackerError):
    """The remote API failed or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class SessionExpiredError(ApiError, AuthenticationError):
    """The server rejected the bearer token; the session was torn down."""

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE, status: Optional[int] = 401):
        ApiError.__init__(self, message, status)


class ValidationError(FinanceTrackerError):
    """Record input rejected before submission."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(detail or "Invalid input data")


class ExportError(FinanceTrackerError):
    """CSV or PDF generation failed."""
    pass


class RequestCancelled(FinanceTrackerError):
    """A response arrived after its view was torn down and was discarded."""
    pass


def user_message(exc: BaseException) -> str:
    """Map an exception to the banner text shown to the user."""
    if isinstance(exc, AuthenticationError):
        return exc.message
    if isinstance(exc, ApiError):
        return exc.message or GENERIC_ERROR_MESSAGE
    if isinstance(exc, ValidationError):
        return str(exc)
    if isinstance(exc, ExportError):
        return str(exc) or "Export failed. Please try again."
    return str(exc) or GENERIC_ERROR_MESSAGE
