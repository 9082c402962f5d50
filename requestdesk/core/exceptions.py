"""Domain errors raised by the request manager and rendered by the error responder."""
from typing import Optional


class RequestDeskError(Exception):
    """Base error carrying the HTTP status the responder should use."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(RequestDeskError):
    status_code = 404


class UnauthorizedError(RequestDeskError):
    status_code = 401


class ValidationFailure(RequestDeskError):
    """Invalid media type or nothing new to request."""

    status_code = 500


class UpstreamFailure(RequestDeskError):
    """Metadata lookup or store operation failed."""

    status_code = 500
