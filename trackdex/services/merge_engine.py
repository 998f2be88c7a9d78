"""Merge engine: two copies at one tier become one copy at the next tier."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import MERGE_COPIES_REQUIRED
from trackdex.db.operations import (
    add_owned_copy,
    copy_to_model,
    get_rarity_by_level,
    rarity_to_model,
)
from trackdex.models.economy_errors import InsufficientCopiesError, MaxTierReachedError
from trackdex.models.ownership import MergeResult
from trackdex.services.ledger import (
    consume_copies,
    contention_guard,
    lock_spendable_copies,
    resolve_rarity,
)

logger = logging.getLogger(__name__)


@contention_guard("merge")
async def merge_items(
    session: AsyncSession, user_id: str, item_id: int, rarity_id: int
) -> MergeResult:
    """
    Consume the two oldest non-stuck copies at ``rarity_id`` and mint one
    copy of the same item at the next tier.

    The reward balance is never touched.

    Raises:
        NotFoundError: If the rarity does not exist
        MaxTierReachedError: If the rarity is the top of the ladder
        InsufficientCopiesError: If fewer than two non-stuck copies exist
    """
    current = await resolve_rarity(session, rarity_id)
    upgraded = await get_rarity_by_level(session, current.level + 1)
    if upgraded is None:
        raise MaxTierReachedError(current.name, current.level)

    spendable = await lock_spendable_copies(session, user_id, item_id, rarity_id)
    if len(spendable) < MERGE_COPIES_REQUIRED:
        raise InsufficientCopiesError("merge", MERGE_COPIES_REQUIRED, len(spendable))

    consumed = await consume_copies(session, spendable[:MERGE_COPIES_REQUIRED])
    new_copy = await add_owned_copy(session, user_id, item_id, upgraded.id)

    logger.info(
        "ITEMS_MERGED",
        extra={
            "user_id": user_id,
            "item_id": item_id,
            "from_level": current.level,
            "to_level": upgraded.level,
            "consumed": consumed,
        },
    )

    return MergeResult(
        item_id=item_id,
        consumed_copy_ids=consumed,
        from_rarity=rarity_to_model(current),
        next_rarity=rarity_to_model(upgraded),
        new_copy=copy_to_model(new_copy),
    )
