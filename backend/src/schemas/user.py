"""Pydantic schemas for user endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """Schema for registering a user."""

    auth0_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="External identity provider subject, e.g., 'auth0|123456'",
    )
    email: str | None = Field(default=None, max_length=255)
    name: str | None = Field(default=None, max_length=255)


class UserUpdate(BaseModel):
    """
    Schema for partial profile updates.

    Only fields explicitly present in the request are applied.
    """

    email: str | None = Field(default=None, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    email_verified_at: datetime | None = None


class UserResponse(BaseModel):
    """Response model for user info."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    auth0_id: str
    email: str | None
    name: str | None
    email_verified_at: datetime | None
