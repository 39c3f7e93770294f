"""
Users router.

Provides REST API endpoints for:
- User registration (public)
- User login (public, token returned in response headers)
- User listing (bearer token required)
"""

import structlog
from typing import List
from fastapi import APIRouter, Depends, Response, status

from users_api.src.config import Settings
from users_api.src.dependencies import get_app_settings, get_current_user, get_user_service
from users_api.src.models.user import (
    CreateUserRequest,
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    UserResponse,
)
from users_api.src.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        400: {"model": ErrorResponse, "description": "Validation Error"}
    }
)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Create User",
    description="""
    Register a new user account.

    **Authentication:** Not required (public endpoint)

    **Error Responses:**
    - 400: Missing fields, mismatched passwords or malformed email
    - 409: Email already registered
    """,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"}
    }
)
async def create_user(
    create_request: CreateUserRequest,
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    logger.info("user_create_attempt", email=create_request.email)
    return await user_service.create_user(create_request)


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    summary="User Login",
    description="""
    Authenticate with email and password.

    The response has no body. The bearer token is returned in the
    Authorization header and the user ID in the UserID header.

    **Error Responses:**
    - 401: Invalid credentials
    """,
    responses={
        200: {"description": "Login successful, token in response headers"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"}
    }
)
async def login(
    login_request: LoginRequest,
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_app_settings)
) -> Response:
    result = await user_service.login(login_request)

    return Response(
        status_code=status.HTTP_200_OK,
        headers={
            settings.token_header_name: f"{settings.token_prefix}{result.access_token}",
            settings.user_id_header_name: result.user_id,
        }
    )


@router.get(
    "",
    response_model=List[UserResponse],
    summary="List Users",
    description="""
    List every registered user.

    **Authentication:** Required (Authorization: Bearer <token>)

    **Error Responses:**
    - 403: Missing or invalid token
    """,
    responses={
        403: {"model": ErrorResponse, "description": "Missing or invalid token"}
    }
)
async def list_users(
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> List[UserResponse]:
    users = await user_service.list_users()
    logger.info("users_listed", user_id=current_user.id, count=len(users))
    return users
