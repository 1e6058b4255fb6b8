"""Redis client with connection pooling and graceful fallback."""
import logging
from collections.abc import Awaitable, Callable

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Async Redis client with connection pooling and graceful fallback.

    Every operation fails open: when Redis is disabled, unreachable, or raises
    mid-operation, the call logs a warning and returns a safe default (None or
    False) instead of raising. Callers treat that as a cache miss.
    """

    def __init__(self, url: str, enabled: bool = True, pool_size: int = 20) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Initialize connection pool and verify connectivity."""
        if not self._enabled:
            logger.info("Redis disabled by configuration")
            return
        try:
            self._pool = ConnectionPool.from_url(self._url, max_connections=self._pool_size)
            self._client = Redis(connection_pool=self._pool)
            # Verify connection
            await self._client.ping()
            logger.info("Redis connected successfully")
        except RedisError as e:
            logger.warning("Redis connection failed: %s", e)
            self._client = None
            self._pool = None

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis connection closed")

    @property
    def enabled(self) -> bool:
        """Whether Redis is turned on in configuration."""
        return self._enabled

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def get(self, key: str) -> bytes | None:
        """Get value, returns None if Redis unavailable."""
        if not self._client:
            return None
        try:
            return await self._client.get(key)
        except RedisError as e:
            logger.warning("Redis GET failed: %s", e)
            return None

    async def setex(self, key: str, seconds: int, value: str | bytes) -> bool:
        """Set value with expiry, returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            await self._client.setex(key, seconds, value)
            return True
        except RedisError as e:
            logger.warning("Redis SETEX failed: %s", e)
            return False

    async def delete(self, *keys: str) -> bool:
        """Delete key(s), returns False if Redis unavailable. Missing keys are not an error."""
        if not self._client:
            return False
        try:
            await self._client.delete(*keys)
            return True
        except RedisError as e:
            logger.warning("Redis DELETE failed: %s", e)
            return False

    async def ttl(self, key: str) -> int | None:
        """
        Get remaining time-to-live in seconds.

        Returns None if Redis is unavailable. Otherwise follows Redis semantics:
        -2 when the key does not exist, -1 when it has no expiry.
        """
        if not self._client:
            return None
        try:
            return await self._client.ttl(key)
        except RedisError as e:
            logger.warning("Redis TTL failed: %s", e)
            return None

    async def remember(
        self,
        key: str,
        seconds: int,
        compute: Callable[[], Awaitable[str | None]],
    ) -> bytes | str | None:
        """
        Return the cached value for key, computing and storing it on a miss.

        On a hit the stored bytes are returned and compute is not called. On a
        miss compute() is awaited; a non-None result is written with SETEX and
        returned as-is. None results are returned without being stored.

        Exceptions raised by compute propagate and nothing is written. There is
        no single-flight protection: concurrent misses each call compute.

        Args:
            key: Cache key.
            seconds: Expiry for the stored value.
            compute: Async callable producing the serialized value.

        Returns:
            Cached bytes on hit, compute()'s result on miss.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await compute()
        if value is not None:
            await self.setex(key, seconds, value)
        return value
