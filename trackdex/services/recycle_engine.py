"""Recycle engine: three copies at one tier become reward tokens."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import RECYCLE_COPIES_REQUIRED
from trackdex.models.economy_errors import InsufficientCopiesError, NoOwnershipError
from trackdex.models.ownership import RecycleResult
from trackdex.services.ledger import (
    consume_copies,
    contention_guard,
    lock_reward_balance,
    lock_spendable_copies,
    resolve_rarity,
)

logger = logging.getLogger(__name__)


@contention_guard("recycle")
async def recycle_items(
    session: AsyncSession,
    user_id: str,
    collection_id: int,
    item_id: int,
    rarity_id: int,
) -> RecycleResult:
    """
    Consume the three oldest non-stuck copies at ``rarity_id`` and credit
    the collection balance with the tier's level in tokens.

    Raises:
        NotFoundError: If the rarity does not exist
        InsufficientCopiesError: If fewer than three non-stuck copies exist
        NoOwnershipError: If the user has no balance row for the collection
    """
    rarity = await resolve_rarity(session, rarity_id)

    spendable = await lock_spendable_copies(session, user_id, item_id, rarity_id)
    if len(spendable) < RECYCLE_COPIES_REQUIRED:
        raise InsufficientCopiesError("recycle", RECYCLE_COPIES_REQUIRED, len(spendable))

    balance = await lock_reward_balance(session, user_id, collection_id)
    if balance is None:
        raise NoOwnershipError(user_id, collection_id)

    consumed = await consume_copies(session, spendable[:RECYCLE_COPIES_REQUIRED])
    balance.unclaimed_rewards += rarity.level
    await session.flush()

    logger.info(
        "ITEMS_RECYCLED",
        extra={
            "user_id": user_id,
            "collection_id": collection_id,
            "item_id": item_id,
            "level": rarity.level,
            "rewards_granted": rarity.level,
        },
    )

    return RecycleResult(
        item_id=item_id,
        consumed_copy_ids=consumed,
        rewards_granted=rarity.level,
        rarity_name=rarity.name,
        rarity_level=rarity.level,
        unclaimed_rewards=balance.unclaimed_rewards,
    )
