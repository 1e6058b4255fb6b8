"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from core.auth_providers import ProviderConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Redis - shared cache for user lookups (must not be per-process memory)
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_enabled: bool = Field(default=True, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")

    # User provider selection
    auth_provider_driver: str = Field(
        default="cached_database",
        validation_alias="AUTH_PROVIDER_DRIVER",
    )
    auth_provider_model: str = Field(
        default="models.user.User",
        validation_alias="AUTH_PROVIDER_MODEL",
    )

    # User cache
    user_cache_ttl: int = Field(default=86_400, gt=0, validation_alias="USER_CACHE_TTL")
    user_cache_misses: bool = Field(default=False, validation_alias="USER_CACHE_MISSES")
    user_cache_miss_ttl: int = Field(default=300, gt=0, validation_alias="USER_CACHE_MISS_TTL")

    # Bearer tokens carrying the user id in the "sub" claim
    jwt_secret: str = Field(default="", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_cache_ttls(self) -> "Settings":
        """Negative entries must not outlive positive ones."""
        if self.user_cache_miss_ttl > self.user_cache_ttl:
            raise ValueError(
                f"USER_CACHE_MISS_TTL ({self.user_cache_miss_ttl}) cannot exceed "
                f"USER_CACHE_TTL ({self.user_cache_ttl}).",
            )
        return self

    @property
    def user_provider_config(self) -> "ProviderConfig":
        """Build the parameter block for the configured user provider driver."""
        from core.auth_providers import ProviderConfig

        return ProviderConfig(
            driver=self.auth_provider_driver,
            model=self.auth_provider_model,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
