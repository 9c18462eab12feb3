"""
Domain exceptions raised by the service layer.

Each error carries a short ``error`` title and a human readable ``message``;
``app.main`` turns them into ``{"error": ..., "message": ...}`` responses
with the matching status code.
"""
from typing import Any, Optional


class AppError(Exception):
    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: str, error: Optional[str] = None, details: Optional[Any] = None):
        self.message = message
        if error:
            self.error = error
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    error = "Validation failed"


class NotFoundError(AppError):
    status_code = 404
    error = "Not found"


class AccessDeniedError(AppError):
    status_code = 403
    error = "Access denied"


class GoneError(AppError):
    """Tracker exists but is inactive or past its expiry."""
    status_code = 410
    error = "Gone"


class ExhaustedAttemptsError(AppError):
    status_code = 500
    error = "Failed to create tracker"


class DependencyFailure(AppError):
    """An external collaborator (mail transport) failed. Never sent to clients."""
    status_code = 502
    error = "Dependency failure"
