"""
Free-claim accrual.

A user earns one token per full interval (600 s by default) since their
last free grant. Claiming advances the timestamp by whole intervals only,
so leftover seconds keep counting toward the next token.
"""

import logging
import math
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import settings
from trackdex.db.operations import as_utc
from trackdex.models.economy_errors import NoOwnershipError, TooSoonError
from trackdex.models.ownership import FreeClaimResult
from trackdex.services.ledger import contention_guard, lock_reward_balance

logger = logging.getLogger(__name__)


def accrued_intervals(last_free_claim: datetime, now: datetime, interval_seconds: int) -> int:
    """Whole intervals elapsed between the last grant and ``now``."""
    elapsed = (now - last_free_claim).total_seconds()
    return max(0, math.floor(elapsed / interval_seconds))


def seconds_until_next(last_free_claim: datetime, now: datetime, interval_seconds: int) -> int:
    """Seconds left until the next token accrues, rounded up."""
    elapsed = (now - last_free_claim).total_seconds()
    if elapsed < 0:
        # Clock moved backwards; the last grant is still in the future
        remaining = interval_seconds - elapsed
    else:
        remaining = interval_seconds - elapsed % interval_seconds
    return max(1, math.ceil(remaining))


@contention_guard("free_claim")
async def claim_free_rewards(
    session: AsyncSession,
    user_id: str,
    collection_id: int,
    now: datetime | None = None,
) -> FreeClaimResult:
    """
    Credit every free token accrued since the last grant.

    The first claim ever grants one token and starts the clock at ``now``.

    Raises:
        NoOwnershipError: If the user has no balance row for the collection
        TooSoonError: If less than one full interval has elapsed
    """
    if now is None:
        now = datetime.now(UTC)
    now = as_utc(now)
    interval_seconds = settings.free_claim_interval_seconds

    balance = await lock_reward_balance(session, user_id, collection_id)
    if balance is None:
        raise NoOwnershipError(user_id, collection_id)

    if balance.last_free_claim is None:
        claimed = 1
        last_free_claim = now
    else:
        previous = as_utc(balance.last_free_claim)
        claimed = accrued_intervals(previous, now, interval_seconds)
        if claimed < 1:
            raise TooSoonError(seconds_until_next(previous, now, interval_seconds))
        last_free_claim = previous + timedelta(seconds=claimed * interval_seconds)

    balance.unclaimed_rewards += claimed
    balance.last_free_claim = last_free_claim
    await session.flush()

    logger.info(
        "FREE_REWARDS_CLAIMED",
        extra={
            "user_id": user_id,
            "collection_id": collection_id,
            "claimed": claimed,
            "last_free_claim": last_free_claim.isoformat(),
        },
    )

    return FreeClaimResult(
        claimed=claimed,
        last_free_claim=last_free_claim,
        unclaimed_rewards=balance.unclaimed_rewards,
    )
