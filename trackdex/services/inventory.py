"""
Manual ownership edits: grant a copy outside the claim flow, or remove one.

Removal never picks a stuck copy while a non-stuck copy of the item
exists. What happens when only the stuck copy is left depends on
``settings.stuck_removal_policy``.
"""

import logging
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import settings
from trackdex.db.operations import (
    add_owned_copy,
    copy_to_model,
    get_collection_item,
    get_lowest_rarity,
)
from trackdex.models.db import OwnedCopyDB
from trackdex.models.economy_errors import NotFoundError, NotOwnedError
from trackdex.models.ownership import OwnedCopy
from trackdex.services.ledger import contention_guard, resolve_rarity

logger = logging.getLogger(__name__)

StuckRemovalPolicy = Literal["last_resort", "never"]


@contention_guard("grant_copy")
async def grant_copy(
    session: AsyncSession, user_id: str, item_id: int, rarity_id: int | None = None
) -> OwnedCopy:
    """
    Add one copy of an item to a user's ledger.

    Without ``rarity_id`` the copy gets the lowest tier.

    Raises:
        NotFoundError: If the item or rarity does not exist
    """
    item = await get_collection_item(session, item_id)
    if item is None:
        raise NotFoundError("Item", item_id)

    if rarity_id is not None:
        rarity = await resolve_rarity(session, rarity_id)
    else:
        lowest = await get_lowest_rarity(session)
        if lowest is None:
            raise NotFoundError("Rarity")
        rarity = lowest

    copy = await add_owned_copy(session, user_id, item_id, rarity.id)
    logger.info(
        "COPY_GRANTED",
        extra={"user_id": user_id, "item_id": item_id, "level": rarity.level},
    )
    return copy_to_model(copy)


@contention_guard("remove_copy")
async def remove_copy(
    session: AsyncSession,
    user_id: str,
    item_id: int,
    policy: StuckRemovalPolicy | None = None,
) -> OwnedCopy:
    """
    Remove one copy of an item, oldest non-stuck first.

    Returns the removed copy.

    Raises:
        NotOwnedError: If the user has no copy, or only a stuck copy is
            left and the policy is "never"
    """
    if policy is None:
        policy = settings.stuck_removal_policy

    result = await session.execute(
        select(OwnedCopyDB)
        .where(OwnedCopyDB.user_id == user_id, OwnedCopyDB.item_id == item_id)
        .order_by(
            OwnedCopyDB.is_stuck.asc(),
            OwnedCopyDB.created_at.asc(),
            OwnedCopyDB.id.asc(),
        )
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    copy = result.scalar_one_or_none()
    if copy is None:
        raise NotOwnedError(item_id)
    if copy.is_stuck and policy == "never":
        raise NotOwnedError(item_id, reason="Only the stuck copy is left; unstick it first")

    removed = copy_to_model(copy)
    await session.delete(copy)
    await session.flush()

    logger.info(
        "COPY_REMOVED",
        extra={"user_id": user_id, "item_id": item_id, "was_stuck": removed.is_stuck},
    )
    return removed
