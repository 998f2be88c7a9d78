"""Tests for time-based free reward accrual."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.db.operations import as_utc, get_user_collection
from trackdex.models.economy_errors import NoOwnershipError, TooSoonError
from trackdex.services.free_claim import (
    accrued_intervals,
    claim_free_rewards,
    seconds_until_next,
)

USER_ID = "user-123"
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class TestAccrual:
    def test_whole_intervals_only(self) -> None:
        assert accrued_intervals(NOW - timedelta(seconds=1205), NOW, 600) == 2
        assert accrued_intervals(NOW - timedelta(seconds=599), NOW, 600) == 0
        assert accrued_intervals(NOW - timedelta(seconds=600), NOW, 600) == 1

    def test_clock_skew_accrues_nothing(self) -> None:
        assert accrued_intervals(NOW + timedelta(seconds=30), NOW, 600) == 0

    def test_seconds_until_next(self) -> None:
        assert seconds_until_next(NOW - timedelta(seconds=100), NOW, 600) == 500
        assert seconds_until_next(NOW - timedelta(seconds=1205), NOW, 600) == 595
        assert seconds_until_next(NOW, NOW, 600) == 600

    def test_seconds_until_next_with_future_timestamp(self) -> None:
        assert seconds_until_next(NOW + timedelta(seconds=30), NOW, 600) == 630


class TestClaimFreeRewards:
    async def test_first_claim_grants_one(self, session: AsyncSession, owned_catalog) -> None:
        """With no previous claim, one token and the clock starts now."""
        collection, _ = owned_catalog

        result = await claim_free_rewards(session, USER_ID, collection.id, now=NOW)
        await session.commit()

        assert result.claimed == 1
        assert result.last_free_claim == NOW
        assert result.unclaimed_rewards == 1

        balance = await get_user_collection(session, USER_ID, collection.id)
        assert as_utc(balance.last_free_claim) == NOW

    async def test_accrual_preserves_partial_progress(
        self, session: AsyncSession, owned_catalog
    ) -> None:
        """1205 s grants two tokens and advances exactly 1200 s."""
        collection, _ = owned_catalog
        last = NOW - timedelta(seconds=1205)
        balance = await get_user_collection(session, USER_ID, collection.id)
        balance.last_free_claim = last
        await session.commit()

        result = await claim_free_rewards(session, USER_ID, collection.id, now=NOW)
        await session.commit()

        assert result.claimed == 2
        assert result.last_free_claim == last + timedelta(seconds=1200)
        assert result.unclaimed_rewards == 2

    async def test_too_soon_leaves_state_unchanged(
        self, session: AsyncSession, owned_catalog
    ) -> None:
        collection, _ = owned_catalog
        collection_id = collection.id
        last = NOW - timedelta(seconds=300)
        balance = await get_user_collection(session, USER_ID, collection_id)
        balance.last_free_claim = last
        balance.unclaimed_rewards = 3
        await session.commit()

        with pytest.raises(TooSoonError) as exc_info:
            await claim_free_rewards(session, USER_ID, collection_id, now=NOW)

        assert exc_info.value.retry_after_seconds == 300
        await session.rollback()
        balance = await get_user_collection(session, USER_ID, collection_id)
        assert balance.unclaimed_rewards == 3
        assert as_utc(balance.last_free_claim) == last

    async def test_second_claim_in_same_instant_fails(
        self, session: AsyncSession, owned_catalog
    ) -> None:
        """Claiming twice without new elapsed intervals grants nothing more."""
        collection, _ = owned_catalog
        await claim_free_rewards(session, USER_ID, collection.id, now=NOW)
        await session.commit()

        with pytest.raises(TooSoonError):
            await claim_free_rewards(session, USER_ID, collection.id, now=NOW)

    async def test_leftover_carries_into_next_claim(
        self, session: AsyncSession, owned_catalog
    ) -> None:
        """The 5 s left over from 1205 s counts toward the next token."""
        collection, _ = owned_catalog
        balance = await get_user_collection(session, USER_ID, collection.id)
        balance.last_free_claim = NOW - timedelta(seconds=1205)
        await session.commit()

        await claim_free_rewards(session, USER_ID, collection.id, now=NOW)
        await session.commit()
        result = await claim_free_rewards(
            session, USER_ID, collection.id, now=NOW + timedelta(seconds=595)
        )

        assert result.claimed == 1
        assert result.unclaimed_rewards == 3

    async def test_naive_now_is_treated_as_utc(
        self, session: AsyncSession, owned_catalog
    ) -> None:
        collection, _ = owned_catalog

        result = await claim_free_rewards(
            session, USER_ID, collection.id, now=NOW.replace(tzinfo=None)
        )

        assert result.last_free_claim == NOW

    async def test_free_claim_without_ownership(self, session: AsyncSession, catalog) -> None:
        collection, _ = catalog

        with pytest.raises(NoOwnershipError):
            await claim_free_rewards(session, USER_ID, collection.id, now=NOW)

    async def test_interval_comes_from_settings(
        self, session: AsyncSession, owned_catalog, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        collection, _ = owned_catalog
        monkeypatch.setattr("trackdex.services.free_claim.settings.free_claim_interval_seconds", 60)
        balance = await get_user_collection(session, USER_ID, collection.id)
        balance.last_free_claim = NOW - timedelta(seconds=185)
        await session.commit()

        result = await claim_free_rewards(session, USER_ID, collection.id, now=NOW)

        assert result.claimed == 3
        assert result.last_free_claim == NOW - timedelta(seconds=5)
