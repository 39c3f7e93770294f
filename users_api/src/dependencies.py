"""
FastAPI dependency injection for settings and the user service.

The application factory builds every collaborator once and stores it on
app.state; these dependencies hand them to route handlers.
"""

from fastapi import Request

from users_api.src.config import Settings
from users_api.src.middleware.auth import get_current_user_from_request
from users_api.src.services.user_service import UserService


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


# The authentication middleware has already validated the token; this
# only reads the result from request state.
get_current_user = get_current_user_from_request
