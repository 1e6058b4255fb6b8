"""Tests for the user provider registry."""
import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core import auth_providers
from core.auth_providers import (
    ProviderConfig,
    ProviderContext,
    UnknownProviderError,
    available_drivers,
    create_user_provider,
    register_provider,
)
from core.config import Settings
from core.redis import RedisClient
from core.user_cache import CachedUserProvider
from core.user_store import DatabaseUserStore
from models.user import User


@pytest.fixture
def context(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
) -> ProviderContext:
    """Shared resources for driver factories."""
    return ProviderContext(
        settings=settings,
        session_factory=session_factory,
        redis_client=redis_client,
    )


class TestProviderConfig:
    """Tests for the provider parameter block."""

    def test__model__resolved_from_dotted_path(self) -> None:
        """The model field imports the class named by a dotted path."""
        config = ProviderConfig(driver="database", model="models.user.User")

        assert config.model is User

    def test__model__defaults_to_user(self) -> None:
        """Without a model, the User table is used."""
        assert ProviderConfig(driver="database").model is User

    def test__model__rejects_unmapped_class(self) -> None:
        """Only SQLAlchemy mapped classes are accepted."""
        with pytest.raises(ValidationError):
            ProviderConfig(driver="database", model="datetime.datetime")

    def test__model__rejects_unknown_path(self) -> None:
        """Paths that cannot be imported fail validation."""
        with pytest.raises(ValidationError):
            ProviderConfig(driver="database", model="models.nope.Nothing")


class TestCreateUserProvider:
    """Tests for building providers from configuration."""

    def test__builtin_drivers__registered(self) -> None:
        """Both built-in drivers are available."""
        assert {"database", "cached_database"} <= set(available_drivers())

    async def test__cached_database__wraps_database_store(
        self, context: ProviderContext,
    ) -> None:
        """cached_database builds a CachedUserProvider with settings TTL."""
        provider = create_user_provider(
            ProviderConfig(driver="cached_database"), context,
        )

        assert isinstance(provider, CachedUserProvider)
        assert provider.ttl == context.settings.user_cache_ttl

    async def test__database__is_uncached(self, context: ProviderContext) -> None:
        """database builds a plain DatabaseUserStore."""
        provider = create_user_provider(ProviderConfig(driver="database"), context)

        assert isinstance(provider, DatabaseUserStore)
        assert provider.model is User

    async def test__unknown_driver__raises(self, context: ProviderContext) -> None:
        """Unregistered driver names are rejected with the available list."""
        with pytest.raises(UnknownProviderError, match="cached_database"):
            create_user_provider(ProviderConfig(driver="ldap"), context)

    async def test__settings__select_driver(self, context: ProviderContext) -> None:
        """Settings.user_provider_config drives provider selection."""
        settings = Settings(
            _env_file=None,
            database_url=context.settings.database_url,
            AUTH_PROVIDER_DRIVER="database",
        )

        provider = create_user_provider(settings.user_provider_config, context)

        assert isinstance(provider, DatabaseUserStore)


class TestRegisterProvider:
    """Tests for registering additional drivers."""

    async def test__register_provider__adds_driver(
        self, context: ProviderContext, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A registered factory is used for its driver name."""
        monkeypatch.setattr(auth_providers, "_providers", dict(auth_providers._providers))
        sentinel = DatabaseUserStore(context.session_factory)

        @register_provider("test_custom_driver")
        def _factory(config: ProviderConfig, ctx: ProviderContext) -> DatabaseUserStore:
            return sentinel

        provider = create_user_provider(ProviderConfig(driver="test_custom_driver"), context)

        assert provider is sentinel

    def test__register_provider__rejects_duplicates(self) -> None:
        """A driver name can only be registered once."""
        with pytest.raises(ValueError, match="already registered"):
            register_provider("database")(lambda config, ctx: None)
