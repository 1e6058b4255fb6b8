"""Cached user representation for user-lookup caching."""
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Self


@dataclass
class CachedUser:
    """
    Lightweight snapshot of a user record, as served by user providers.

    Avoids ORM reconstruction complexity and detaches the result from any
    database session - just the fields needed once a request is authenticated.

    IMPORTANT: When adding, removing, or renaming fields in this class, you MUST bump
    CACHE_SCHEMA_VERSION in core/user_cache.py. Entries written with another version
    are treated as cache misses and replaced, so old snapshots never deserialize
    into the new shape.

    WARNING: This is not an ORM object. Mutate users through services.user_service
    so cached snapshots get invalidated.
    """

    id: int
    auth0_id: str
    email: str | None
    name: str | None
    email_verified_at: datetime | None

    @classmethod
    def from_model(cls, user: Any) -> Self:
        """Snapshot any model instance exposing the CachedUser attributes."""
        return cls(**{f.name: getattr(user, f.name) for f in fields(cls)})

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation (datetimes as ISO 8601 strings)."""
        return {
            "id": self.id,
            "auth0_id": self.auth0_id,
            "email": self.email,
            "name": self.name,
            "email_verified_at": (
                self.email_verified_at.isoformat() if self.email_verified_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Inverse of to_dict."""
        verified_at = data.get("email_verified_at")
        return cls(
            id=data["id"],
            auth0_id=data["auth0_id"],
            email=data.get("email"),
            name=data.get("name"),
            email_verified_at=datetime.fromisoformat(verified_at) if verified_at else None,
        )
