"""
User service.

Orchestrates the user operations behind the HTTP layer:
- create: validate, check email uniqueness, hash password, persist
- login: verify credentials and issue a session token
- list: return the public view of every stored user
- authenticate_token: resolve a bearer token to the calling user

Collaborators (store, password hasher, token service) are passed in by
the application factory.
"""

import structlog
from typing import List, Optional
from uuid import uuid4

from shared.metrics import UserMetrics
from users_api.src.models.user import (
    CreateUserRequest,
    CurrentUser,
    LoginRequest,
    LoginResult,
    User,
    UserResponse,
)
from users_api.src.repositories.user_repo import DuplicateEmailError, UserRepository
from users_api.src.services.errors import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    ValidationError,
)
from users_api.src.services.security import PasswordHasher, TokenService

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user registration, login and listing."""

    def __init__(
        self,
        user_repo: UserRepository,
        password_hasher: PasswordHasher,
        token_service: TokenService,
        password_min_length: int = 8,
        metrics: Optional[UserMetrics] = None
    ):
        """
        Initialize user service.

        Args:
            user_repo: User store
            password_hasher: Password hasher
            token_service: Session token issuer/validator
            password_min_length: Minimum accepted password length
            metrics: Optional user metrics to record outcomes on
        """
        self.user_repo = user_repo
        self.password_hasher = password_hasher
        self.token_service = token_service
        self.password_min_length = password_min_length
        self.metrics = metrics

    async def create_user(self, request: CreateUserRequest) -> UserResponse:
        """
        Register a new user.

        Args:
            request: Create user request

        Returns:
            Public view of the created user

        Raises:
            ValidationError: If a field is empty or the passwords differ
            ConflictError: If the email is already registered
        """
        first_name = request.first_name.strip()
        last_name = request.last_name.strip()
        email = request.email.strip()

        try:
            self._validate_new_user(first_name, last_name, email, request.password, request.repeat_password)
        except ValidationError as e:
            logger.warning("user_create_invalid", email=email, reason=e.message)
            self._record_rejection("validation")
            raise

        if await self.user_repo.get_user_by_email(email) is not None:
            logger.warning("user_create_conflict", email=email)
            self._record_rejection("conflict")
            raise ConflictError(f"A user with email '{email}' already exists")

        user = User(
            id=str(uuid4()),
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=self.password_hasher.hash_password(request.password)
        )

        try:
            await self.user_repo.add_user(user)
        except DuplicateEmailError as e:
            # Another request registered the same email between lookup and insert
            logger.warning("user_create_conflict", email=email, race=True)
            self._record_rejection("conflict")
            raise ConflictError(f"A user with email '{email}' already exists") from e

        if self.metrics:
            self.metrics.users_created.inc()

        logger.info("user_registered", user_id=user.id, email=user.email)
        return UserResponse.from_user(user)

    def _validate_new_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        repeat_password: str
    ) -> None:
        missing = [
            name for name, value in (
                ("firstName", first_name),
                ("lastName", last_name),
                ("email", email),
                ("password", password),
                ("repeatPassword", repeat_password),
            )
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        if password != repeat_password:
            raise ValidationError("Passwords do not match")

        # bcrypt refuses NUL bytes
        if "\x00" in password:
            raise ValidationError("Password must not contain NUL characters")

        if len(password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters long"
            )

    async def list_users(self) -> List[UserResponse]:
        """
        Return every stored user as a public view, in store order.

        Access control happens before this call, in the authentication
        middleware.
        """
        users = await self.user_repo.list_users()
        logger.debug("users_listed", count=len(users))
        return [UserResponse.from_user(user) for user in users]

    async def login(self, login_request: LoginRequest) -> LoginResult:
        """
        Authenticate with email and password and issue a session token.

        Args:
            login_request: Login credentials

        Returns:
            Token and the authenticated user's ID

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        user = await self.user_repo.get_user_by_email(login_request.email)

        if not user:
            # Same bcrypt cost as a wrong password for known emails
            self.password_hasher.verify_password(login_request.password, self.password_hasher.dummy_hash)
            logger.warning("authentication_failed_user_not_found", email=login_request.email)
            self._record_login("unknown_email")
            raise AuthenticationError("Invalid credentials")

        if not self.password_hasher.verify_password(login_request.password, user.password_hash):
            logger.warning("authentication_failed_invalid_password", email=login_request.email)
            self._record_login("invalid_password")
            raise AuthenticationError("Invalid credentials")

        access_token = self.token_service.create_access_token(user.id)
        self._record_login("success")

        logger.info("login_success", user_id=user.id, email=user.email)
        return LoginResult(
            access_token=access_token,
            user_id=user.id,
            expires_in=self.token_service.expires_in
        )

    async def authenticate_token(self, token: str) -> CurrentUser:
        """
        Resolve a bearer token to the user it was issued for.

        Raises:
            InvalidTokenError: If the token is invalid or its user no longer exists
        """
        payload = self.token_service.decode_token(token)

        if not payload:
            raise InvalidTokenError("Invalid authentication token")

        user = await self.user_repo.get_user_by_id(payload.sub)

        if not user:
            logger.warning("token_user_not_found", user_id=payload.sub)
            raise InvalidTokenError("Invalid authentication token")

        return CurrentUser(id=user.id, email=user.email)

    def _record_rejection(self, reason: str) -> None:
        if self.metrics:
            self.metrics.user_create_rejected.labels(reason=reason).inc()

    def _record_login(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.login_attempts.labels(outcome=outcome).inc()
