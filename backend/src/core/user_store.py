"""Authoritative user lookups against the database."""
import logging
from typing import Protocol

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.user import User
from schemas.cached_user import CachedUser
from services.exceptions import UserStoreError

logger = logging.getLogger(__name__)

# Largest value a BIGINT primary key can hold
MAX_INTEGER_KEY = 2**63 - 1


class UserStore(Protocol):
    """Anything that can look a user up by primary key."""

    def normalize_identifier(self, identifier: int | str) -> int | str | None:
        """Canonical primary key for identifier, or None if it cannot match any row."""
        ...

    async def lookup_by_id(self, identifier: int | str) -> CachedUser | None:
        """Return a snapshot of the user, or None if no such user exists."""
        ...


class UserProvider(Protocol):
    """What authentication asks for: the user behind an identifier."""

    async def retrieve_by_id(self, identifier: int | str) -> CachedUser | None:
        """Return the user for identifier, or None if no such user exists."""
        ...


class DatabaseUserStore:
    """
    User store backed by a SQLAlchemy model.

    Each lookup runs in its own short-lived session so the returned snapshot
    never holds on to a request's unit of work. Also usable directly as an
    uncached UserProvider.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type = User,
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        self._pk_type = inspect(model).primary_key[0].type.python_type

    @property
    def model(self) -> type:
        """The mapped class users are loaded from."""
        return self._model

    def normalize_identifier(self, identifier: int | str) -> int | str | None:
        """
        Match the identifier to the primary key type.

        Integer keys accept ASCII digit strings, so "01" and 1 both become 1.
        Anything else that cannot be an integer key returns None.
        """
        if self._pk_type is int and isinstance(identifier, str):
            if not (identifier.isascii() and identifier.isdecimal()) or len(identifier) > 19:
                return None
            value = int(identifier)
            return value if value <= MAX_INTEGER_KEY else None
        return identifier

    async def lookup_by_id(self, identifier: int | str) -> CachedUser | None:
        """
        Load a user by primary key.

        Args:
            identifier: Primary key value; digit strings are accepted for integer keys.

        Returns:
            CachedUser snapshot, or None if no row matches.

        Raises:
            UserStoreError: If the database query fails.
        """
        key = self.normalize_identifier(identifier)
        if key is None:
            return None
        try:
            async with self._session_factory() as session:
                user = await session.get(self._model, key)
                return CachedUser.from_model(user) if user is not None else None
        except SQLAlchemyError as e:
            logger.error("User lookup failed for id=%s: %s", identifier, e, exc_info=True)
            raise UserStoreError(f"Could not load user {identifier}") from e

    async def retrieve_by_id(self, identifier: int | str) -> CachedUser | None:
        """Uncached provider contract: straight to the database."""
        return await self.lookup_by_id(identifier)
