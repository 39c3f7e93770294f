"""
User repositories.

Provides the async user store used by the user service:
- UserRepository: the store interface
- InMemoryUserRepository: process-local store for development and tests
- PostgresUserRepository: asyncpg-backed store with connection pooling

Both implementations enforce the unique-email invariant themselves and
raise DuplicateEmailError when it would be violated. Emails are compared
case-insensitively.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import asyncpg
import structlog

from users_api.src.models.user import User

logger = structlog.get_logger(__name__)


class DuplicateEmailError(ValueError):
    """Raised when a user with the same email already exists."""

    def __init__(self, email: str):
        super().__init__(f"Email '{email}' already exists")
        self.email = email


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(ABC):
    """Interface of the user store."""

    async def connect(self) -> None:
        """Acquire backing resources. Called once at application startup."""

    async def close(self) -> None:
        """Release backing resources. Called once at application shutdown."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store can serve requests."""

    @abstractmethod
    async def add_user(self, user: User) -> User:
        """
        Persist a new user.

        Raises:
            DuplicateEmailError: If the email is already registered
        """

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Return the user with the given ID, or None."""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Return the user with the given email (any case), or None."""

    @abstractmethod
    async def list_users(self) -> List[User]:
        """Return every user in store iteration order."""


class InMemoryUserRepository(UserRepository):
    """
    Dictionary-backed user store.

    Users are kept in insertion order. Writes are serialized with an
    asyncio.Lock so the email uniqueness check and the insert happen
    atomically with respect to other coroutines on the same event loop.
    Reads do not take the lock.
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._ids_by_email: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def ping(self) -> bool:
        return True

    async def add_user(self, user: User) -> User:
        key = normalize_email(user.email)
        async with self._lock:
            if key in self._ids_by_email:
                logger.warning("email_already_exists", email=user.email)
                raise DuplicateEmailError(user.email)
            if user.id in self._users:
                raise ValueError(f"User ID '{user.id}' already exists")

            self._users[user.id] = user
            self._ids_by_email[key] = user.id

        logger.info("user_created", user_id=user.id, email=user.email)
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        if user is None:
            logger.debug("user_not_found", user_id=user_id)
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = self._ids_by_email.get(normalize_email(email))
        if user_id is None:
            logger.debug("user_not_found", email=email)
            return None
        return self._users[user_id]

    async def list_users(self) -> List[User]:
        return list(self._users.values())

    def __len__(self) -> int:
        return len(self._users)


class PostgresUserRepository(UserRepository):
    """
    PostgreSQL user store using an asyncpg connection pool.

    The pool is created in connect() and closed in close(). Email
    uniqueness is guaranteed by a unique index on lower(email).
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            email TEXT NOT NULL,
            password_hash TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
        CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_lower ON users (lower(email));
        CREATE INDEX IF NOT EXISTS idx_users_created_at ON users (created_at);
    """

    _COLUMNS = "id, first_name, last_name, email, password_hash, created_at"

    def __init__(
        self,
        dsn: str,
        pool_size: int = 10,
        command_timeout: int = 30,
        pool: Optional[asyncpg.Pool] = None
    ):
        """
        Initialize user repository.

        Args:
            dsn: PostgreSQL connection URL
            pool_size: Maximum pool connections
            command_timeout: Per-statement timeout (seconds)
            pool: Existing pool to use instead of creating one
        """
        self.dsn = dsn
        self.pool_size = pool_size
        self.command_timeout = command_timeout
        self.pool = pool

    async def connect(self) -> None:
        if self.pool is None:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=1,
                max_size=self.pool_size,
                command_timeout=self.command_timeout
            )
            logger.info(
                "database_pool_initialized",
                pool_size=self.pool_size,
                database=self.dsn.split("@")[-1]
            )

        async with self.pool.acquire() as conn:
            await conn.execute(self.SCHEMA)

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            logger.info("database_pool_closed")
            self.pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            logger.error("database_pool_not_initialized")
            raise RuntimeError(
                "Database pool not initialized. Call connect() during startup."
            )
        return self.pool

    async def ping(self) -> bool:
        try:
            async with self._require_pool().acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return False

    async def add_user(self, user: User) -> User:
        """
        Insert a user.

        Raises:
            DuplicateEmailError: If the email already exists
            asyncpg.PostgresError: On database error
        """
        try:
            async with self._require_pool().acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO users (id, first_name, last_name, email, password_hash, created_at)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    """,
                    user.id,
                    user.first_name,
                    user.last_name,
                    user.email,
                    user.password_hash,
                    user.created_at
                )
        except asyncpg.UniqueViolationError as e:
            if "email" in str(e):
                logger.warning("email_already_exists", email=user.email)
                raise DuplicateEmailError(user.email) from e
            raise

        logger.info("user_created", user_id=user.id, email=user.email)
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {self._COLUMNS} FROM users WHERE id = $1",
                user_id
            )

        if not row:
            logger.debug("user_not_found", user_id=user_id)
            return None
        return self._row_to_user(row)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {self._COLUMNS} FROM users WHERE lower(email) = $1",
                normalize_email(email)
            )

        if not row:
            logger.debug("user_not_found", email=email)
            return None
        return self._row_to_user(row)

    async def list_users(self) -> List[User]:
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {self._COLUMNS} FROM users ORDER BY created_at, id"
            )
        return [self._row_to_user(row) for row in rows]

    @staticmethod
    def _row_to_user(row) -> User:
        return User(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=row["created_at"]
        )
