"""
Domain errors - every failure a service can surface to its caller
"""
from typing import Optional


class ServiceError(Exception):
    """Base class for errors raised by the application services"""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Malformed or missing required input"""
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class ConflictError(ServiceError):
    """Uniqueness violation"""
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists"


class UnauthenticatedError(ServiceError):
    """Missing, invalid or expired credential"""
    status_code = 401
    code = "unauthenticated"
    default_message = "Not authenticated"


class UnauthorizedError(ServiceError):
    """Valid identity but wrong password or insufficient privilege"""
    status_code = 401
    code = "unauthorized"
    default_message = "Invalid credentials were provided"


class NotFoundError(ServiceError):
    """No matching row, or zero rows affected by a conditional write"""
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class RestoreWindowExpiredError(ServiceError):
    """Soft-deleted row is too old to be restored"""
    status_code = 500
    code = "restore_window_expired"
    default_message = "Restore window has expired"


class InternalError(ServiceError):
    """Unexpected failure from the database or the media storage"""


class MediaUploadError(InternalError):
    """A media batch could not be uploaded"""
    code = "media_upload_failed"
    default_message = "Failed to upload media"
