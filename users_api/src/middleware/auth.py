"""
JWT authentication middleware for FastAPI.

Provides:
- Bearer token extraction from the Authorization header
- Token validation through the user service
- Request context enrichment with the authenticated user
- Public route and exempt path handling

Requests to protected routes without a valid token are answered with
403 before the route handler runs.
"""

import structlog
from typing import Callable, Iterable, Optional, Set, Tuple
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from users_api.src.models.user import CurrentUser
from users_api.src.services.errors import InvalidTokenError
from users_api.src.services.user_service import UserService

logger = structlog.get_logger(__name__)

DEFAULT_PUBLIC_ROUTES: Set[Tuple[str, str]] = {
    ("POST", "/users"),
    ("POST", "/users/login"),
}

DEFAULT_EXEMPT_PATHS = [
    "/health",
    "/ready",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
]


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware to authenticate requests using JWT tokens.

    Extracts the bearer token from the Authorization header, validates it,
    and adds the current user to request state.
    """

    def __init__(
        self,
        app,
        user_service: UserService,
        public_routes: Optional[Iterable[Tuple[str, str]]] = None,
        exempt_paths: Optional[list] = None
    ):
        """
        Initialize auth middleware.

        Args:
            app: ASGI application
            user_service: Service resolving tokens to users
            public_routes: (method, path) pairs that don't require authentication
            exempt_paths: Path prefixes that don't require authentication
        """
        super().__init__(app)
        self.user_service = user_service
        self.public_routes = {
            (method.upper(), self._normalize_path(path))
            for method, path in (public_routes if public_routes is not None else DEFAULT_PUBLIC_ROUTES)
        }
        self.exempt_paths = exempt_paths if exempt_paths is not None else DEFAULT_EXEMPT_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and authenticate user.

        Args:
            request: HTTP request
            call_next: Next middleware in chain

        Returns:
            HTTP response
        """
        request.state.user = None

        if self._is_public(request.method, request.url.path):
            logger.debug("auth_exempt", path=request.url.path, method=request.method)
            return await call_next(request)

        token = self._extract_token(request)

        if not token:
            logger.warning(
                "auth_missing_token",
                path=request.url.path,
                method=request.method,
                client=request.client.host if request.client else None
            )
            return self._forbidden("Missing authentication token")

        try:
            current_user = await self.user_service.authenticate_token(token)
        except InvalidTokenError as e:
            logger.warning(
                "auth_invalid_token",
                path=request.url.path,
                method=request.method,
                client=request.client.host if request.client else None
            )
            return self._forbidden(e.message, e.error_code)

        request.state.user = current_user

        logger.info(
            "request_authenticated",
            path=request.url.path,
            method=request.method,
            user_id=current_user.id
        )

        return await call_next(request)

    def _is_public(self, method: str, path: str) -> bool:
        """
        Check if a request may proceed without authentication.

        Args:
            method: HTTP method
            path: Request path

        Returns:
            True if exempt, False otherwise
        """
        if method.upper() == "OPTIONS":
            return True
        if (method.upper(), self._normalize_path(path)) in self.public_routes:
            return True
        for exempt_path in self.exempt_paths:
            if path.startswith(exempt_path):
                return True
        return False

    @staticmethod
    def _normalize_path(path: str) -> str:
        return path.rstrip("/") or "/"

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract JWT token from Authorization header.

        Args:
            request: HTTP request

        Returns:
            JWT token or None if not found
        """
        authorization = request.headers.get("Authorization")

        if not authorization:
            return None

        parts = authorization.split()

        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning("auth_malformed_header", path=request.url.path)
            return None

        return parts[1]

    @staticmethod
    def _forbidden(detail: str, error_code: str = InvalidTokenError.error_code) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": detail, "error_code": error_code},
            headers={"WWW-Authenticate": "Bearer"}
        )


async def get_current_user_from_request(request: Request) -> CurrentUser:
    """
    Get current authenticated user from request.

    Args:
        request: HTTP request

    Returns:
        Current user

    Raises:
        HTTPException: If user not authenticated
    """
    user = getattr(request.state, "user", None)

    if not user:
        logger.warning("user_not_authenticated", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user
