"""
Registry of user provider drivers.

Authentication never builds a user provider directly; it asks the registry for
the driver named in configuration, passing the driver's parameter block (which
model to load) and the shared resources it may use. New drivers register with
the `register_provider` decorator.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel, Field, ImportString, field_validator
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings
from core.redis import RedisClient
from core.user_cache import CachedUserProvider
from core.user_store import DatabaseUserStore, UserProvider

logger = logging.getLogger(__name__)


class UnknownProviderError(ValueError):
    """Raised when configuration names a driver nobody registered."""

    def __init__(self, driver: str, available: list[str]) -> None:
        self.driver = driver
        self.available = available
        super().__init__(
            f"Unknown user provider driver '{driver}'. Available: {', '.join(available)}",
        )


class ProviderConfig(BaseModel):
    """Parameter block for a user provider driver."""

    driver: str = Field(..., min_length=1)
    model: ImportString = Field(default="models.user.User", validate_default=True)

    @field_validator("model")
    @classmethod
    def validate_model_is_mapped(cls, value: object) -> object:
        """The model must be a SQLAlchemy mapped class with a single-column primary key."""
        mapper = inspect(value, raiseerr=False)
        if mapper is None or not hasattr(mapper, "primary_key"):
            raise ValueError(f"{value!r} is not a SQLAlchemy mapped class")
        if len(mapper.primary_key) != 1:
            raise ValueError(f"{value!r} must have a single-column primary key")
        return value


@dataclass
class ProviderContext:
    """Shared resources handed to driver factories."""

    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    redis_client: RedisClient


ProviderFactory = Callable[[ProviderConfig, ProviderContext], UserProvider]

_providers: dict[str, ProviderFactory] = {}


def register_provider(driver: str) -> Callable[[ProviderFactory], ProviderFactory]:
    """
    Register a user provider factory under a driver name.

    Raises:
        ValueError: If the driver name is already registered.
    """
    def decorator(factory: ProviderFactory) -> ProviderFactory:
        if driver in _providers:
            raise ValueError(f"User provider driver '{driver}' is already registered")
        _providers[driver] = factory
        return factory

    return decorator


def available_drivers() -> list[str]:
    """Names of all registered drivers, sorted."""
    return sorted(_providers)


def create_user_provider(config: ProviderConfig, context: ProviderContext) -> UserProvider:
    """
    Build the user provider selected by config.

    Raises:
        UnknownProviderError: If config.driver is not registered.
    """
    factory = _providers.get(config.driver)
    if factory is None:
        raise UnknownProviderError(config.driver, available_drivers())
    provider = factory(config, context)
    logger.info(
        "User provider configured: driver=%s model=%s",
        config.driver,
        config.model.__name__,
    )
    return provider


@register_provider("database")
def _database_provider(config: ProviderConfig, context: ProviderContext) -> UserProvider:
    """Uncached lookups straight from the database."""
    return DatabaseUserStore(context.session_factory, model=config.model)


@register_provider("cached_database")
def _cached_database_provider(
    config: ProviderConfig, context: ProviderContext,
) -> UserProvider:
    """Database lookups behind the Redis user cache."""
    settings = context.settings
    if not settings.redis_enabled:
        logger.warning(
            "cached_database driver selected with Redis disabled; "
            "user lookups will always hit the database",
        )
    return CachedUserProvider(
        DatabaseUserStore(context.session_factory, model=config.model),
        context.redis_client,
        ttl=settings.user_cache_ttl,
        cache_misses=settings.user_cache_misses,
        miss_ttl=settings.user_cache_miss_ttl,
    )
