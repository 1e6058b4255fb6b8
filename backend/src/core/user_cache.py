"""Caching of user lookups for reduced database load."""
import json
import logging
from typing import TYPE_CHECKING, Protocol

from schemas.cached_user import CachedUser

if TYPE_CHECKING:
    from core.redis import RedisClient
    from core.user_store import UserStore
    from models.user import User

logger = logging.getLogger(__name__)

# Cache schema version - stored in every cache entry as {"v": ..., "user": ...}
#
# Bump this version when CachedUser fields are added, removed, or renamed.
# Entries carrying another version are treated as misses and overwritten on the
# next lookup, so deployments never need a cache flush. Keys stay "user_<id>"
# so invalidation works regardless of which version wrote the entry.
CACHE_SCHEMA_VERSION = 1

DEFAULT_TTL = 86_400  # 1 day
DEFAULT_MISS_TTL = 300  # 5 minutes


def user_cache_key(identifier: int | str) -> str:
    """Cache key for a user id, shared by the loader and the invalidator."""
    return f"user_{identifier}"


class UserChangeListener(Protocol):
    """Receives notifications after a write to a user row has committed."""

    async def on_created(self, user: "User") -> None:
        """Handle a newly created user."""
        ...

    async def on_updated(self, user: "User") -> None:
        """Handle an updated user."""
        ...

    async def on_deleted(self, user: "User") -> None:
        """Handle a deleted user."""
        ...


class _UnreadableEntryError(ValueError):
    """Cache entry exists but cannot be turned back into a CachedUser."""


class CachedUserProvider:
    """
    User provider that serves lookups from Redis, falling back to a user store.

    Entries live under "user_<id>" for `ttl` seconds, or until a
    UserCacheInvalidator deletes them. "No such user" results are only cached
    when `cache_misses` is enabled, with their own (shorter) TTL.
    """

    def __init__(
        self,
        store: "UserStore",
        redis_client: "RedisClient",
        ttl: int = DEFAULT_TTL,
        cache_misses: bool = False,
        miss_ttl: int = DEFAULT_MISS_TTL,
    ) -> None:
        """Wrap a user store with a Redis cache."""
        self._store = store
        self._redis = redis_client
        self._ttl = ttl
        self._cache_misses = cache_misses
        self._miss_ttl = miss_ttl

    @property
    def ttl(self) -> int:
        """Expiry, in seconds, of cached user snapshots."""
        return self._ttl

    async def retrieve_by_id(self, identifier: int | str) -> CachedUser | None:
        """
        Get a user by id, from cache when possible.

        Args:
            identifier: The user's primary key. The store normalizes it before the
                cache key is built, so "01" and 1 share the entry "user_1".

        Returns:
            CachedUser snapshot, or None if no such user exists.

        Raises:
            UserStoreError: If the cache missed and the store lookup failed.
                Nothing is cached in that case.
        """
        user_id = self._store.normalize_identifier(identifier)
        if user_id is None:
            logger.debug("user_cache_skip_invalid_id user_id=%r", identifier)
            return None
        key = user_cache_key(user_id)

        async def load() -> str | None:
            logger.debug("user_cache_miss user_id=%s", user_id)
            user = await self._store.lookup_by_id(user_id)
            if user is None:
                if self._cache_misses:
                    await self._redis.setex(key, self._miss_ttl, self._serialize(None))
                    logger.debug("user_cache_set_missing user_id=%s", user_id)
                return None
            logger.debug("user_cache_set user_id=%s ttl=%s", user_id, self._ttl)
            return self._serialize(user)

        data = await self._redis.remember(key, self._ttl, load)
        if data is None:
            return None
        try:
            return self._deserialize(data)
        except _UnreadableEntryError as e:
            logger.warning("user_cache_unreadable user_id=%s: %s", user_id, e)
            await self._redis.delete(key)
            fresh = await load()
            if fresh is None:
                return None
            await self._redis.setex(key, self._ttl, fresh)
            return self._deserialize(fresh)

    def _serialize(self, user: CachedUser | None) -> str:
        """Serialize a snapshot (or a cached miss) to the versioned envelope."""
        return json.dumps({
            "v": CACHE_SCHEMA_VERSION,
            "user": user.to_dict() if user is not None else None,
        })

    def _deserialize(self, data: bytes | str) -> CachedUser | None:
        """Deserialize the versioned envelope; raises _UnreadableEntryError if unusable."""
        try:
            envelope = json.loads(data)
            version = envelope.get("v")
        except (ValueError, AttributeError) as e:
            raise _UnreadableEntryError(str(e)) from e
        if version != CACHE_SCHEMA_VERSION:
            raise _UnreadableEntryError(f"schema version {version!r}")

        payload = envelope.get("user")
        if payload is None:
            logger.debug("user_cache_hit_missing")
            return None
        try:
            user = CachedUser.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise _UnreadableEntryError(str(e)) from e
        logger.debug("user_cache_hit user_id=%s", user.id)
        return user


class UserCacheInvalidator:
    """
    Evicts cached user snapshots when users change.

    Implements UserChangeListener; plug it into services.user_service calls.
    Only writes that go through that service are seen - bulk statements or
    direct SQL leave entries in place until their TTL runs out.
    """

    def __init__(self, redis_client: "RedisClient") -> None:
        """Initialize invalidator with Redis client."""
        self._redis = redis_client

    async def invalidate(self, user_id: int | str) -> bool:
        """
        Delete the cache entry for a user id.

        Idempotent: deleting an absent entry is a no-op. Never raises; if Redis
        is unavailable the failure is logged and the entry is left to expire.

        Returns:
            True if Redis accepted the delete.
        """
        deleted = await self._redis.delete(user_cache_key(user_id))
        if deleted:
            logger.debug("user_cache_invalidate user_id=%s", user_id)
        elif not self._redis.enabled:
            logger.debug("user_cache_invalidate_skipped user_id=%s (redis disabled)", user_id)
        else:
            logger.warning(
                "user_cache_invalidate_failed user_id=%s (entry expires via TTL)",
                user_id,
            )
        return deleted

    async def on_created(self, user: "User") -> None:
        """Clear any cached miss recorded before the user existed."""
        await self.invalidate(user.id)

    async def on_updated(self, user: "User") -> None:
        """Evict the now-outdated snapshot."""
        await self.invalidate(user.id)

    async def on_deleted(self, user: "User") -> None:
        """Evict the snapshot of a removed user."""
        await self.invalidate(user.id)
