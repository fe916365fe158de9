"""
Domain exceptions raised by the services layer.
Routes translate them into HTTP errors.
"""

from typing import Optional


class CopySenseiError(Exception):
    """Base class for expected, recoverable failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(CopySenseiError):
    """Input failed validation before any state change."""

    status_code = 400


class NotFoundError(CopySenseiError):
    """A user, project or document could not be resolved."""

    status_code = 404


class LowValueMessageError(CopySenseiError):
    """Small talk that is blocked with an advisory instead of sent."""

    status_code = 422


class InsufficientCreditsError(CopySenseiError):
    """A billable request was made without enough credits."""

    status_code = 402

    def __init__(self, message: str, balance: int = 0):
        super().__init__(message)
        self.balance = balance


class SessionBusyError(CopySenseiError):
    """A send is already awaiting its response for this session."""

    status_code = 409


class RemoteServiceError(CopySenseiError):
    """The remote functions or database failed or returned garbage."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
