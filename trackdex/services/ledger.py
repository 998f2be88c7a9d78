"""
Locking reads and shared mutations for the economy engine.

Every mutating operation runs inside the caller's transaction. Balance
rows and candidate copies are read with ``SELECT ... FOR UPDATE`` so two
concurrent requests for the same (user, collection) or (user, item)
serialize on the row lock instead of both passing their checks.

SQLite ignores FOR UPDATE; there the database-level write lock does the
same job and surfaces as "database is locked".
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.models.db import OwnedCopyDB, RarityDB, UserCollectionDB
from trackdex.models.economy_errors import ContentionError, NotFoundError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# PostgreSQL: lock_not_available, deadlock_detected, serialization_failure
CONTENTION_SQLSTATES = frozenset({"55P03", "40P01", "40001"})

SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked")


def is_lock_contention(error: DBAPIError) -> bool:
    """True if the driver error means another transaction held the lock."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in CONTENTION_SQLSTATES:
        return True
    message = str(orig).lower()
    return any(busy in message for busy in SQLITE_BUSY_MESSAGES)


def contention_guard(
    operation: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Translate lock timeouts and deadlocks raised by ``operation`` into
    ContentionError.

    Other database errors propagate unchanged.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except DBAPIError as e:
                if not is_lock_contention(e):
                    raise
                logger.warning(
                    "LOCK_CONTENTION",
                    extra={"operation": operation, "error": str(e.orig)},
                )
                raise ContentionError(operation, detail=str(e.orig)) from e

        return wrapper

    return decorator


async def commit_or_contention(session: AsyncSession, operation: str) -> None:
    """
    Commit the request transaction before a response is built.

    Serialization failures and deadlocks can surface at COMMIT rather than
    at the locking read; those roll back and raise ContentionError so the
    client never sees a success that was not saved.
    """
    try:
        await session.commit()
    except DBAPIError as e:
        await session.rollback()
        if not is_lock_contention(e):
            raise
        logger.warning(
            "LOCK_CONTENTION",
            extra={"operation": operation, "error": str(e.orig), "phase": "commit"},
        )
        raise ContentionError(operation, detail=str(e.orig)) from e


# --- Balance ---


def balance_lock_statement(user_id: str, collection_id: int) -> Select[tuple[UserCollectionDB]]:
    """SELECT ... FOR UPDATE on one (user, collection) balance row."""
    return (
        select(UserCollectionDB)
        .where(
            UserCollectionDB.user_id == user_id,
            UserCollectionDB.collection_id == collection_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def lock_reward_balance(
    session: AsyncSession, user_id: str, collection_id: int
) -> UserCollectionDB | None:
    """
    Lock and return the balance row.

    Returns None if the user never took the collection.
    """
    result = await session.execute(balance_lock_statement(user_id, collection_id))
    return result.scalar_one_or_none()


# --- Rarity ---


async def resolve_rarity(session: AsyncSession, rarity_id: int) -> RarityDB:
    """Get a tier by id or raise NotFoundError."""
    rarity = await session.get(RarityDB, rarity_id)
    if rarity is None:
        raise NotFoundError("Rarity", rarity_id)
    return rarity


# --- Copies ---


def spendable_copies_statement(
    user_id: str, item_id: int, rarity_id: int
) -> Select[tuple[OwnedCopyDB]]:
    """Non-stuck copies at one rarity, oldest first, locked."""
    return (
        select(OwnedCopyDB)
        .where(
            OwnedCopyDB.user_id == user_id,
            OwnedCopyDB.item_id == item_id,
            OwnedCopyDB.rarity_id == rarity_id,
            OwnedCopyDB.is_stuck.is_(False),
        )
        .order_by(OwnedCopyDB.created_at.asc(), OwnedCopyDB.id.asc())
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def lock_spendable_copies(
    session: AsyncSession, user_id: str, item_id: int, rarity_id: int
) -> list[OwnedCopyDB]:
    """Lock every copy merge or recycle could consume, oldest first."""
    result = await session.execute(spendable_copies_statement(user_id, item_id, rarity_id))
    return list(result.scalars().all())


async def consume_copies(session: AsyncSession, copies: list[OwnedCopyDB]) -> tuple[int, ...]:
    """Delete the given copies and return their ids."""
    copy_ids = tuple(copy.id for copy in copies)
    for copy in copies:
        await session.delete(copy)
    await session.flush()
    return copy_ids
