"""Authentication: bearer token validation and current-user resolution."""
import logging

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings
from core.user_cache import UserChangeListener
from core.user_store import UserProvider
from schemas.cached_user import CachedUser
from services.exceptions import UserStoreError

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_user_provider(request: Request) -> UserProvider:
    """Dependency returning the user provider wired at startup."""
    return request.app.state.user_provider


def get_user_listener(request: Request) -> UserChangeListener:
    """Dependency returning the listener that receives user change notifications."""
    return request.app.state.user_listener


def decode_token(token: str, settings: Settings) -> dict:
    """
    Decode and validate a bearer token.

    Raises:
        HTTPException: If token is invalid or expired.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    provider: UserProvider = Depends(get_user_provider),
    settings: Settings = Depends(get_settings),
) -> CachedUser:
    """
    Dependency that validates the token and returns the current user.

    The token's "sub" claim is the user id; the user itself comes from the
    configured user provider (cached by default).
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials, settings)
    user_id = str(payload["sub"])

    try:
        user = await provider.retrieve_by_id(user_id)
    except UserStoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load user",
        )

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
