"""Tests for reward API endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.db.operations import create_collection, take_collection

USER_ID = "user-123"


class TestRewardsOverview:
    async def test_unknown_user_has_no_collections(self, client: AsyncClient) -> None:
        response = await client.get("/rewards/nobody")

        assert response.status_code == 200
        assert response.json() == {"user_id": "nobody", "collections": []}

    async def test_lists_taken_collections(
        self, client: AsyncClient, ladder, owned_catalog, add_copies
    ) -> None:
        collection, items = owned_catalog
        await add_copies(items[0].id, ladder[0].id, 2)

        response = await client.get(f"/rewards/{USER_ID}")

        assert response.status_code == 200
        (entry,) = response.json()["collections"]
        assert entry["collection_id"] == collection.id
        assert entry["collection_name"] == "Road Trip"
        assert entry["unclaimed_rewards"] == 0
        assert entry["total_items"] == 3
        assert entry["claimed_items"] == 1
        assert entry["last_free_claim"] is None


class TestClaim:
    async def test_claim_spends_one_token(
        self, client: AsyncClient, ladder, owned_catalog
    ) -> None:
        collection, items = owned_catalog
        await client.post(f"/rewards/{USER_ID}/add", json={"collection_id": collection.id})

        response = await client.post(
            f"/rewards/{USER_ID}/claim", json={"collection_id": collection.id}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["claimed"] is True
        assert data["unclaimed_rewards"] == 9
        assert data["item"]["item_id"] in {item.id for item in items}
        assert data["item"]["collection_id"] == collection.id
        assert data["item"]["rarity_id"] in {tier.id for tier in ladder}

        owned = await client.get(f"/collections/{collection.id}/items/{USER_ID}")
        assert sum(row["copy_count"] for row in owned.json()["items"]) == 1

    async def test_claim_without_tokens(
        self, client: AsyncClient, ladder, owned_catalog
    ) -> None:
        collection, _ = owned_catalog

        response = await client.post(
            f"/rewards/{USER_ID}/claim", json={"collection_id": collection.id}
        )

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "insufficient_balance"

    async def test_claim_without_ownership(self, client: AsyncClient, ladder, catalog) -> None:
        collection, _ = catalog

        response = await client.post(
            f"/rewards/{USER_ID}/claim", json={"collection_id": collection.id}
        )

        assert response.status_code == 403
        assert response.json()["failure"]["kind"] == "no_ownership"

    async def test_claim_from_empty_collection(
        self, client: AsyncClient, session: AsyncSession, ladder
    ) -> None:
        """An empty collection yields no item and keeps the token."""
        empty = await create_collection(session, "Empty")
        await take_collection(session, USER_ID, empty.id, initial_rewards=1)
        await session.commit()

        response = await client.post(f"/rewards/{USER_ID}/claim", json={"collection_id": empty.id})

        assert response.status_code == 200
        assert response.json()["claimed"] is False
        assert response.json()["item"] is None

        overview = await client.get(f"/rewards/{USER_ID}")
        assert overview.json()["collections"][0]["unclaimed_rewards"] == 1

    async def test_rejects_bad_collection_id(self, client: AsyncClient) -> None:
        response = await client.post(f"/rewards/{USER_ID}/claim", json={"collection_id": 0})

        assert response.status_code == 422


class TestFreeClaim:
    async def test_first_free_claim(self, client: AsyncClient, owned_catalog) -> None:
        collection, _ = owned_catalog

        response = await client.post(
            f"/rewards/{USER_ID}/free-claim", json={"collection_id": collection.id}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["claimed"] == 1
        assert data["unclaimed_rewards"] == 1
        assert data["last_free_claim"] is not None

    async def test_second_free_claim_too_soon(self, client: AsyncClient, owned_catalog) -> None:
        collection, _ = owned_catalog
        await client.post(f"/rewards/{USER_ID}/free-claim", json={"collection_id": collection.id})

        response = await client.post(
            f"/rewards/{USER_ID}/free-claim", json={"collection_id": collection.id}
        )

        assert response.status_code == 400
        failure = response.json()["failure"]
        assert failure["kind"] == "too_soon"
        assert "next free claim in" in failure["detail"]

        overview = await client.get(f"/rewards/{USER_ID}")
        assert overview.json()["collections"][0]["unclaimed_rewards"] == 1

    async def test_free_claim_without_ownership(self, client: AsyncClient, catalog) -> None:
        collection, _ = catalog

        response = await client.post(
            f"/rewards/{USER_ID}/free-claim", json={"collection_id": collection.id}
        )

        assert response.status_code == 403


class TestAddRewards:
    async def test_top_up(self, client: AsyncClient, owned_catalog) -> None:
        collection, _ = owned_catalog

        response = await client.post(
            f"/rewards/{USER_ID}/add", json={"collection_id": collection.id}
        )

        assert response.status_code == 200
        assert response.json() == {"collection_id": collection.id, "unclaimed_rewards": 10}

    async def test_top_up_requires_ownership(self, client: AsyncClient, catalog) -> None:
        collection, _ = catalog

        response = await client.post(
            f"/rewards/{USER_ID}/add", json={"collection_id": collection.id}
        )

        assert response.status_code == 403
