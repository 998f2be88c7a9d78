"""
Reward API endpoints.

Balances, token claims, free claims and top-ups for a user.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.db import list_user_collections_with_rewards
from trackdex.db.database import get_session
from trackdex.services.claim_engine import claim_random_item
from trackdex.services.free_claim import claim_free_rewards
from trackdex.services.ledger import commit_or_contention
from trackdex.services.rewards import add_rewards

router = APIRouter(prefix="/rewards", tags=["rewards"])


class CollectionRequest(BaseModel):
    """Request body naming the collection to act on."""

    collection_id: int = Field(..., gt=0)


class CollectionRewardsResponse(BaseModel):
    """A user's balance and progress in one collection."""

    collection_id: int
    collection_name: str
    cover_image_url: str | None = None
    unclaimed_rewards: int
    last_free_claim: datetime | None = None
    total_items: int
    claimed_items: int


class RewardsOverviewResponse(BaseModel):
    """Every collection the user took, with balances."""

    user_id: str
    collections: list[CollectionRewardsResponse] = Field(default_factory=list)


class ClaimedItemResponse(BaseModel):
    """A freshly minted copy."""

    copy_id: int
    item_id: int
    collection_id: int
    track_name: str
    album_name: str | None = None
    album_cover_url: str | None = None
    rarity_id: int
    rarity_name: str
    rarity_color: str
    rarity_level: int


class ClaimResponse(BaseModel):
    """Result of spending one reward token."""

    claimed: bool
    item: ClaimedItemResponse | None = Field(
        default=None,
        description="None when the collection has no items; no token is spent",
    )
    unclaimed_rewards: int | None = None


class FreeClaimResponse(BaseModel):
    """Tokens granted by the free-claim meter."""

    claimed: int
    last_free_claim: datetime
    unclaimed_rewards: int


class AddRewardsResponse(BaseModel):
    """Balance after a top-up."""

    collection_id: int
    unclaimed_rewards: int


@router.get("/{user_id}", response_model=RewardsOverviewResponse)
async def get_rewards(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RewardsOverviewResponse:
    """List the user's collections with unclaimed rewards and progress."""
    collections = await list_user_collections_with_rewards(session, user_id)
    return RewardsOverviewResponse(
        user_id=user_id,
        collections=[
            CollectionRewardsResponse.model_validate(entry, from_attributes=True)
            for entry in collections
        ],
    )


@router.post("/{user_id}/claim", response_model=ClaimResponse)
async def claim(
    user_id: str,
    request: CollectionRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ClaimResponse:
    """
    Spend one token on a random item from the collection.

    The rarity is drawn from the weighted ladder.
    """
    claimed = await claim_random_item(session, user_id, request.collection_id)
    await commit_or_contention(session, "claim")
    if claimed is None:
        return ClaimResponse(claimed=False, item=None)

    return ClaimResponse(
        claimed=True,
        item=ClaimedItemResponse(
            copy_id=claimed.copy.id,
            item_id=claimed.copy.item_id,
            collection_id=claimed.collection_id,
            track_name=claimed.track_name,
            album_name=claimed.album_name,
            album_cover_url=claimed.album_cover_url,
            rarity_id=claimed.rarity.id,
            rarity_name=claimed.rarity.name,
            rarity_color=claimed.rarity.color,
            rarity_level=claimed.rarity.level,
        ),
        unclaimed_rewards=claimed.unclaimed_rewards,
    )


@router.post("/{user_id}/free-claim", response_model=FreeClaimResponse)
async def free_claim(
    user_id: str,
    request: CollectionRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> FreeClaimResponse:
    """Collect every free token accrued since the last free claim."""
    result = await claim_free_rewards(session, user_id, request.collection_id)
    await commit_or_contention(session, "free_claim")
    return FreeClaimResponse(
        claimed=result.claimed,
        last_free_claim=result.last_free_claim,
        unclaimed_rewards=result.unclaimed_rewards,
    )


@router.post("/{user_id}/add", response_model=AddRewardsResponse)
async def top_up(
    user_id: str,
    request: CollectionRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AddRewardsResponse:
    """Credit the configured top-up amount to an owned collection."""
    balance = await add_rewards(session, user_id, request.collection_id)
    await commit_or_contention(session, "add_rewards")
    return AddRewardsResponse(collection_id=request.collection_id, unclaimed_rewards=balance)
