"""
Tests for the Failure Classification System.

These tests verify the core invariant:

    No raw 500 error for a business-rule failure.
    Every economy failure has a kind, a status and a fixed shape.
"""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.models.economy_errors import (
    ContentionError,
    InsufficientBalanceError,
    InsufficientCopiesError,
    InvalidInputError,
    MaxTierReachedError,
    NoOwnershipError,
    NotFoundError,
    NotOwnedError,
    RarityInUseError,
    TooSoonError,
)
from trackdex.models.failure import (
    STANDARD_UNKNOWN_MESSAGE,
    FailureKind,
    KnownError,
    create_unknown_failure,
    failure_payload,
)


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("error", "kind", "status_code"),
        [
            (NoOwnershipError("u", 1), FailureKind.NO_OWNERSHIP, 403),
            (InsufficientBalanceError(0), FailureKind.INSUFFICIENT_BALANCE, 400),
            (InsufficientCopiesError("merge", 2, 1), FailureKind.INSUFFICIENT_COPIES, 409),
            (MaxTierReachedError("Legendary", 5), FailureKind.MAX_TIER_REACHED, 409),
            (NotOwnedError(1), FailureKind.NOT_OWNED, 404),
            (TooSoonError(30), FailureKind.TOO_SOON, 400),
            (NotFoundError("Rarity", 9), FailureKind.NOT_FOUND, 404),
            (RarityInUseError(1, 2), FailureKind.RARITY_IN_USE, 409),
            (InvalidInputError("amount", "must be positive"), FailureKind.INVALID_INPUT, 400),
            (ContentionError("claim"), FailureKind.CONTENTION, 503),
        ],
    )
    def test_kind_and_status(self, error: KnownError, kind: FailureKind, status_code: int) -> None:
        assert error.kind == kind
        assert error.status_code == status_code

    def test_only_contention_is_retryable(self) -> None:
        assert ContentionError("merge").is_retryable is True
        assert InsufficientBalanceError(0).is_retryable is False
        assert TooSoonError(5).is_retryable is False

    def test_not_found_message(self) -> None:
        assert str(NotFoundError("Item", 7)) == "Item not found: 7"
        assert str(NotFoundError("Rarity")) == "Rarity not found"

    def test_insufficient_copies_message(self) -> None:
        error = InsufficientCopiesError("recycle", 3, 1)
        assert error.message == "Not enough copies to recycle: need 3, have 1"

    def test_too_soon_carries_wait(self) -> None:
        error = TooSoonError(42)
        assert error.retry_after_seconds == 42
        assert "42s" in error.detail


class TestPayload:
    def test_payload_shape(self) -> None:
        payload = failure_payload(MaxTierReachedError("Legendary", 5))

        assert payload == {
            "failure": {
                "kind": "max_tier_reached",
                "message": "Legendary is already the maximum rarity",
                "detail": "no tier at level 6",
                "suggestion": None,
            },
            "retryable": False,
        }

    def test_contention_payload_is_retryable(self) -> None:
        assert failure_payload(ContentionError("claim"))["retryable"] is True


class TestUnknownFailure:
    def test_fixed_message(self) -> None:
        response = create_unknown_failure(RuntimeError("secret connection string"))

        assert response.failure.kind == FailureKind.UNKNOWN
        assert response.failure.message == STANDARD_UNKNOWN_MESSAGE
        assert response.failure.detail == "RuntimeError"
        assert "secret" not in response.model_dump_json()
        assert response.retryable is False


class TestHttpRendering:
    async def test_known_error_uses_own_status(self, client: AsyncClient) -> None:
        response = await client.get("/rarities/12345")

        assert response.status_code == 404
        body = response.json()
        assert body["failure"]["kind"] == "not_found"
        assert body["retryable"] is False
        assert "Retry-After" not in response.headers

    async def test_contention_sets_retry_after(self, client: AsyncClient, owned_catalog) -> None:
        collection, _ = owned_catalog

        with patch(
            "trackdex.api.rewards.add_rewards",
            side_effect=ContentionError("add_rewards", "lock timeout"),
        ):
            response = await client.post(
                "/rewards/user-123/add", json={"collection_id": collection.id}
            )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        body = response.json()
        assert body["retryable"] is True
        assert body["failure"]["kind"] == "contention"

    async def test_lock_failure_at_commit_is_not_reported_as_success(
        self, client: AsyncClient, owned_catalog
    ) -> None:
        """A commit that loses the lock race answers 503 and saves nothing."""
        collection, _ = owned_catalog
        collection_id = collection.id

        with patch.object(
            AsyncSession,
            "commit",
            side_effect=OperationalError("COMMIT", {}, Exception("database is locked")),
        ):
            response = await client.post(
                "/rewards/user-123/add", json={"collection_id": collection_id}
            )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        body = response.json()
        assert body["retryable"] is True
        assert body["failure"]["kind"] == "contention"

        overview = await client.get("/rewards/user-123")
        assert overview.json()["collections"][0]["unclaimed_rewards"] == 0

    async def test_lock_failure_at_commit_keeps_copies(
        self, client: AsyncClient, ladder, owned_catalog, add_copies
    ) -> None:
        collection, items = owned_catalog
        collection_id, item_id, rarity_id = collection.id, items[0].id, ladder[0].id
        await add_copies(item_id, rarity_id, 2)

        with patch.object(
            AsyncSession,
            "commit",
            side_effect=OperationalError("COMMIT", {}, Exception("database is locked")),
        ):
            response = await client.post(
                f"/collections/{collection_id}/items/{item_id}/merge/user-123",
                json={"rarity_id": rarity_id},
            )

        assert response.status_code == 503

        owned = await client.get(f"/collections/{collection_id}/items/user-123")
        assert [(row["rarity_id"], row["copy_count"]) for row in owned.json()["items"]] == [
            (rarity_id, 2)
        ]
