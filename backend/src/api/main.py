"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.routers import health, users
from core.auth_providers import ProviderContext, create_user_provider
from core.config import Settings, get_settings
from core.redis import RedisClient
from core.user_cache import UserCacheInvalidator
from db.session import create_engine, create_session_factory


def configure_app_state(
    app: FastAPI,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
) -> None:
    """
    Wire the database, cache, user provider, and cache invalidator onto app.state.

    Dependencies read these back per request; nothing is kept in module globals.
    """
    app.state.session_factory = session_factory
    app.state.redis_client = redis_client
    app.state.user_provider = create_user_provider(
        settings.user_provider_config,
        ProviderContext(
            settings=settings,
            session_factory=session_factory,
            redis_client=redis_client,
        ),
    )
    app.state.user_listener = UserCacheInvalidator(redis_client)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: Database engine
    engine = create_engine(app_settings)

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()

    configure_app_state(app, app_settings, create_session_factory(engine), redis_client)

    yield

    # Shutdown: Clean up Redis and the engine
    await redis_client.close()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    application = FastAPI(
        title="Users API",
        description="User accounts with cached lookups for authentication.",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.include_router(health.router)
    application.include_router(users.router)
    return application


app = create_app()


def main() -> None:
    """Entry point for running the API server as a script."""
    app_settings = get_settings()
    logging.basicConfig(
        level=app_settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
