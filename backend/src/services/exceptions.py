"""Shared exceptions for service layer operations."""


class UserStoreError(Exception):
    """
    Raised when the authoritative user store cannot answer a lookup.

    Wraps the underlying database error. Cached user providers let it propagate
    without writing a cache entry.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UserAlreadyExistsError(Exception):
    """Raised when registering a user whose external subject is already taken."""

    def __init__(self, auth0_id: str) -> None:
        self.auth0_id = auth0_id
        super().__init__(f"User already exists: {auth0_id}")
