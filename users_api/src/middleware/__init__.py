"""FastAPI middleware components.

This package contains custom middleware for request/response processing,
authentication, logging and metrics.
"""

from users_api.src.middleware.auth import (
    AuthMiddleware,
    get_current_user_from_request,
)
from users_api.src.middleware.request_logging import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)

__all__ = [
    "AuthMiddleware",
    "get_current_user_from_request",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
