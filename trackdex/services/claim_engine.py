"""
Claim engine: spend one reward token on a random item.

The item is drawn uniformly from the collection (with replacement, so
duplicates are normal) and its rarity from the weighted ladder. The token
is only spent when a copy is actually minted.
"""

import logging
import random

from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.db.operations import (
    add_owned_copy,
    copy_to_model,
    get_collection_item,
    list_collection_item_ids,
    list_rarities,
    rarity_to_model,
)
from trackdex.models.economy_errors import (
    InsufficientBalanceError,
    NoOwnershipError,
    NotFoundError,
)
from trackdex.models.ownership import ClaimedItem
from trackdex.services.ledger import contention_guard, lock_reward_balance
from trackdex.services.rarity_draw import pick_weighted_rarity

logger = logging.getLogger(__name__)


@contention_guard("claim")
async def claim_random_item(
    session: AsyncSession,
    user_id: str,
    collection_id: int,
    rng: random.Random | None = None,
) -> ClaimedItem | None:
    """
    Spend one token and mint one copy of a random item.

    Returns None when the collection has no items; the balance is left
    untouched in that case.

    Raises:
        NoOwnershipError: If the user has no balance row for the collection
        InsufficientBalanceError: If the balance is zero
        NotFoundError: If no rarity tiers are configured, or the drawn item
            was deleted mid-claim
    """
    balance = await lock_reward_balance(session, user_id, collection_id)
    if balance is None:
        raise NoOwnershipError(user_id, collection_id)
    if balance.unclaimed_rewards < 1:
        raise InsufficientBalanceError(balance.unclaimed_rewards)

    item_ids = await list_collection_item_ids(session, collection_id)
    if not item_ids:
        logger.info(
            "CLAIM_EMPTY_COLLECTION",
            extra={"user_id": user_id, "collection_id": collection_id},
        )
        return None

    tiers = [rarity_to_model(rarity) for rarity in await list_rarities(session)]
    if not tiers:
        raise NotFoundError("Rarity")

    if rng is None:
        rng = random.Random()

    item_id = rng.choice(item_ids)
    rarity_id = pick_weighted_rarity(tiers, rng)
    rarity = next(tier for tier in tiers if tier.id == rarity_id)

    item = await get_collection_item(session, item_id)
    if item is None:
        raise NotFoundError("Item", item_id)

    balance.unclaimed_rewards -= 1
    copy = await add_owned_copy(session, user_id, item_id, rarity_id)

    logger.info(
        "ITEM_CLAIMED",
        extra={
            "user_id": user_id,
            "collection_id": collection_id,
            "item_id": item_id,
            "rarity": rarity.name,
            "unclaimed_rewards": balance.unclaimed_rewards,
        },
    )

    return ClaimedItem(
        copy=copy_to_model(copy),
        collection_id=collection_id,
        track_name=item.track_name,
        album_name=item.album_name,
        album_cover_url=item.album_cover_url,
        rarity=rarity,
        unclaimed_rewards=balance.unclaimed_rewards,
    )
