"""
Core module for the Sales Call Recorder.
Contains configuration, database, exceptions, and middleware.
"""

from .config import settings
from .database import (
    create_engine_for,
    create_session_factory,
    get_db,
    get_session_factory,
    init_db,
    close_db,
)
from .exceptions import (
    AppException,
    ConfigurationError,
    ValidationError,
    NotFoundException,
)
from .middleware import RequestContextMiddleware

__all__ = [
    "settings",
    "create_engine_for",
    "create_session_factory",
    "get_db",
    "get_session_factory",
    "init_db",
    "close_db",
    "AppException",
    "ConfigurationError",
    "ValidationError",
    "NotFoundException",
    "RequestContextMiddleware",
]
