"""
Service layer for user writes.

Every write that goes through here notifies a UserChangeListener once the
request transaction commits, which is how cached user snapshots get evicted.
Notifying any earlier would let a concurrent lookup re-cache the old row. Writes that
bypass this module (bulk UPDATE/DELETE statements, raw SQL, other processes)
are not observed; cached entries for those users stay until their TTL expires.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.user_cache import UserChangeListener
from db.session import run_after_commit
from models.user import User
from schemas.user import UserCreate, UserUpdate
from services.exceptions import UserAlreadyExistsError

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Load a user row by id (uncached, for writes)."""
    return await db.get(User, user_id)


async def create_user(
    db: AsyncSession,
    data: UserCreate,
    listener: UserChangeListener,
) -> User:
    """
    Register a new user.

    Args:
        db: Database session.
        data: Registration data.
        listener: Notified with the new user after the transaction commits.

    Returns:
        The created User.

    Raises:
        UserAlreadyExistsError: If auth0_id is already registered.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    result = await db.execute(select(User.id).where(User.auth0_id == data.auth0_id))
    if result.scalar_one_or_none() is not None:
        raise UserAlreadyExistsError(data.auth0_id)

    user = User(auth0_id=data.auth0_id, email=data.email, name=data.name)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Race condition: another request registered the same subject between
        # our SELECT and INSERT.
        raise UserAlreadyExistsError(data.auth0_id) from e
    await db.refresh(user)

    run_after_commit(db, lambda: listener.on_created(user))
    logger.info("User created: id=%s", user.id)
    return user


async def update_user(
    db: AsyncSession,
    user_id: int,
    data: UserUpdate,
    listener: UserChangeListener,
) -> User | None:
    """
    Apply a partial update to a user.

    Only fields explicitly set on `data` are written. The listener is notified
    only when at least one value actually changed.

    Args:
        db: Database session.
        user_id: ID of the user to update.
        data: Fields to change.
        listener: Notified with the updated user after the transaction commits.

    Returns:
        The updated User, or None if no such user exists.
    """
    user = await get_user(db, user_id)
    if user is None:
        return None

    changed = False
    for field, value in data.model_dump(exclude_unset=True).items():
        if getattr(user, field) != value:
            setattr(user, field, value)
            changed = True

    if not changed:
        return user

    await db.flush()
    await db.refresh(user)

    run_after_commit(db, lambda: listener.on_updated(user))
    logger.info("User updated: id=%s", user.id)
    return user


async def delete_user(
    db: AsyncSession,
    user_id: int,
    listener: UserChangeListener,
) -> bool:
    """
    Delete a user.

    Returns:
        True if the user existed and was deleted, False otherwise.
    """
    user = await get_user(db, user_id)
    if user is None:
        return False

    await db.delete(user)
    await db.flush()

    run_after_commit(db, lambda: listener.on_deleted(user))
    logger.info("User deleted: id=%s", user_id)
    return True
