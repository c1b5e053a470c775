"""
Application exception types.

Every AppException is rendered by the handler registered in main.py as
{"success": false, "error": <error_code>, "message": ..., "details": ...}.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code


class ConfigurationError(AppException):
    """Required credentials or settings are absent or malformed."""

    status_code = 500
    error_code = "configuration_error"


class ValidationError(AppException):
    """Caller supplied input that cannot be used."""

    status_code = 400
    error_code = "validation_error"


class NotFoundException(AppException):
    status_code = 404
    error_code = "not_found"
