"""
Stick / unstick: protect one copy per (user, item) from merge and recycle.

A stuck copy is simply skipped by the spendable-copy queries. At most one
copy per (user, item) is stuck at any time; sticking a new copy first
clears the old flag in the same transaction.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.models.db import OwnedCopyDB, RarityDB
from trackdex.models.economy_errors import NotOwnedError
from trackdex.models.ownership import StickResult
from trackdex.services.ledger import contention_guard, resolve_rarity

logger = logging.getLogger(__name__)


@contention_guard("stick")
async def stick_item(
    session: AsyncSession, user_id: str, item_id: int, rarity_id: int | None = None
) -> StickResult:
    """
    Mark one copy of an item as stuck.

    With ``rarity_id`` the oldest copy at that rarity is chosen (stuck or
    not). Without it, the highest-level copy wins and ties go to the oldest.

    Raises:
        NotFoundError: If ``rarity_id`` is not a configured tier
        NotOwnedError: If no copy matches
    """
    if rarity_id is not None:
        await resolve_rarity(session, rarity_id)

    result = await session.execute(
        select(OwnedCopyDB, RarityDB)
        .join(RarityDB, RarityDB.id == OwnedCopyDB.rarity_id)
        .where(OwnedCopyDB.user_id == user_id, OwnedCopyDB.item_id == item_id)
        .order_by(OwnedCopyDB.created_at.asc(), OwnedCopyDB.id.asc())
        .with_for_update(of=OwnedCopyDB)
        .execution_options(populate_existing=True)
    )
    rows = result.all()

    if rarity_id is not None:
        candidates = [row for row in rows if row.OwnedCopyDB.rarity_id == rarity_id]
    else:
        candidates = list(rows)
    if not candidates:
        raise NotOwnedError(item_id, rarity_id)

    # max() keeps the first of equal levels, and rows are oldest first
    target, rarity = max(candidates, key=lambda row: row.RarityDB.level)

    for copy, _ in rows:
        if copy.is_stuck and copy.id != target.id:
            copy.is_stuck = False
    # Clear the old flag before setting the new one so the one-stuck index
    # never sees two rows
    await session.flush()

    target.is_stuck = True
    await session.flush()

    logger.info(
        "ITEM_STUCK",
        extra={
            "user_id": user_id,
            "item_id": item_id,
            "copy_id": target.id,
            "level": rarity.level,
        },
    )

    return StickResult(
        copy_id=target.id,
        rarity_id=rarity.id,
        rarity_name=rarity.name,
        color=rarity.color,
        level=rarity.level,
    )


@contention_guard("unstick")
async def unstick_item(session: AsyncSession, user_id: str, item_id: int) -> bool:
    """
    Clear the stuck flag for (user, item).

    Returns True if a copy was unstuck, False if none was stuck.
    """
    result = await session.execute(
        select(OwnedCopyDB)
        .where(
            OwnedCopyDB.user_id == user_id,
            OwnedCopyDB.item_id == item_id,
            OwnedCopyDB.is_stuck.is_(True),
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    stuck = list(result.scalars().all())
    for copy in stuck:
        copy.is_stuck = False
    await session.flush()

    unstuck = bool(stuck)
    if unstuck:
        logger.info("ITEM_UNSTUCK", extra={"user_id": user_id, "item_id": item_id})
    return unstuck
