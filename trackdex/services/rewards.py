"""Direct reward top-ups."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import settings
from trackdex.models.economy_errors import InvalidInputError, NoOwnershipError
from trackdex.services.ledger import contention_guard, lock_reward_balance

logger = logging.getLogger(__name__)


@contention_guard("add_rewards")
async def add_rewards(
    session: AsyncSession, user_id: str, collection_id: int, amount: int | None = None
) -> int:
    """
    Credit ``amount`` tokens (default: the configured top-up) to a balance.

    Returns the new balance.

    Raises:
        InvalidInputError: If amount is not positive
        NoOwnershipError: If the user has no balance row for the collection
    """
    if amount is None:
        amount = settings.reward_top_up_amount
    if amount < 1:
        raise InvalidInputError("amount", "must be at least 1")

    balance = await lock_reward_balance(session, user_id, collection_id)
    if balance is None:
        raise NoOwnershipError(user_id, collection_id)

    balance.unclaimed_rewards += amount
    await session.flush()

    logger.info(
        "REWARDS_ADDED",
        extra={
            "user_id": user_id,
            "collection_id": collection_id,
            "amount": amount,
            "unclaimed_rewards": balance.unclaimed_rewards,
        },
    )
    return balance.unclaimed_rewards
