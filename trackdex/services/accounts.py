"""
Fold an anonymous user's economy state into an authenticated user.

Runs inside the caller's transaction. Overlapping balances are summed,
everything else is re-owned by the target user.
"""

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.db.operations import as_utc
from trackdex.models.db import OwnedCopyDB, UserCollectionDB
from trackdex.models.economy_errors import InvalidInputError
from trackdex.models.ownership import AccountMergeResult
from trackdex.services.ledger import contention_guard

logger = logging.getLogger(__name__)


def _later(first: datetime | None, second: datetime | None) -> datetime | None:
    if first is None:
        return second
    if second is None:
        return first
    return max(as_utc(first), as_utc(second))


@contention_guard("merge_accounts")
async def merge_user_accounts(
    session: AsyncSession, source_user_id: str, target_user_id: str
) -> AccountMergeResult:
    """
    Move every balance row and owned copy from source to target.

    For a collection both users took, the target keeps one row with the
    summed balance and the later ``last_free_claim``. If both users have a
    stuck copy of the same item, the source's copy is unstuck so the target
    still has exactly one.

    Raises:
        InvalidInputError: If source and target are the same user
    """
    if source_user_id == target_user_id:
        raise InvalidInputError("target_user_id", "cannot merge a user into itself")

    result = await session.execute(
        select(UserCollectionDB)
        .where(UserCollectionDB.user_id.in_([source_user_id, target_user_id]))
        .order_by(UserCollectionDB.id.asc())
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    rows = list(result.scalars().all())
    target_rows = {row.collection_id: row for row in rows if row.user_id == target_user_id}
    source_rows = [row for row in rows if row.user_id == source_user_id]

    merged = 0
    moved = 0
    for source in source_rows:
        target = target_rows.get(source.collection_id)
        if target is None:
            source.user_id = target_user_id
            moved += 1
            continue
        target.unclaimed_rewards += source.unclaimed_rewards
        target.last_free_claim = _later(target.last_free_claim, source.last_free_claim)
        await session.delete(source)
        merged += 1
    await session.flush()

    target_stuck_items = select(OwnedCopyDB.item_id).where(
        OwnedCopyDB.user_id == target_user_id,
        OwnedCopyDB.is_stuck.is_(True),
    )
    await session.execute(
        update(OwnedCopyDB)
        .where(
            OwnedCopyDB.user_id == source_user_id,
            OwnedCopyDB.is_stuck.is_(True),
            OwnedCopyDB.item_id.in_(target_stuck_items),
        )
        .values(is_stuck=False)
    )
    copies_moved = await session.scalar(
        select(func.count()).select_from(OwnedCopyDB).where(OwnedCopyDB.user_id == source_user_id)
    )
    await session.execute(
        update(OwnedCopyDB)
        .where(OwnedCopyDB.user_id == source_user_id)
        .values(user_id=target_user_id)
    )

    logger.info(
        "ACCOUNTS_MERGED",
        extra={
            "source_user_id": source_user_id,
            "target_user_id": target_user_id,
            "collections_merged": merged,
            "collections_moved": moved,
            "copies_moved": copies_moved,
        },
    )

    return AccountMergeResult(
        collections_merged=merged,
        collections_moved=moved,
        copies_moved=int(copies_moved or 0),
    )
