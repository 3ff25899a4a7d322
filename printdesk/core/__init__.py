"""
PrintDesk - Core Module

Contains security, error handling, middleware and logging.
"""

from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ErrorResponse,
    NotFoundError,
    PrintDeskError,
    UpstreamError,
    ValidationError,
    setup_error_handlers,
)
from .middleware import RequestLoggingMiddleware, get_request_id
from .security import AccessGuard, admin_user, current_user

__all__ = [
    # Security
    "AccessGuard",
    "admin_user",
    "current_user",
    # Middleware
    "RequestLoggingMiddleware",
    "get_request_id",
    # Errors
    "ErrorResponse",
    "PrintDeskError",
    "ConfigurationError",
    "AuthenticationError",
    "AuthorizationError",
    "ValidationError",
    "NotFoundError",
    "UpstreamError",
    "setup_error_handlers",
]
