"""
Application errors for the booking service.

Each error carries the HTTP status the API layer renders it with, so the
service and repositories can raise them without importing FastAPI.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced to callers of the booking service."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f'{self.message}: {self.cause}'
        return self.message


class ValidationError(AppError):
    """Raised when an appointment or request breaks a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """Raised when a referenced appointment does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Raised when a trainer or user is already booked for the window."""

    status_code = status.HTTP_409_CONFLICT


class InternalError(AppError):
    """Wraps persistence failures and other unexpected faults."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class OperationCancelledError(InternalError):
    """Raised when a deadline expires or is cancelled mid-operation."""
