"""
Collection API endpoints.

Taking a collection, listing owned items, and the per-item economy actions
(manual ownership, merge, recycle, stick).
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import settings
from trackdex.db import (
    get_collection,
    get_collection_item,
    list_owned_items_with_rarity,
    release_collection,
    take_collection,
)
from trackdex.db.database import get_session
from trackdex.models.economy_errors import NotFoundError
from trackdex.models.ownership import OwnedCopy
from trackdex.services.inventory import grant_copy, remove_copy
from trackdex.services.ledger import commit_or_contention
from trackdex.services.merge_engine import merge_items
from trackdex.services.recycle_engine import recycle_items
from trackdex.services.stick import stick_item, unstick_item

router = APIRouter(prefix="/collections", tags=["collections"])


# --- Request / Response Models ---


class RarityRequest(BaseModel):
    """Request body naming the rarity to act on."""

    rarity_id: int = Field(..., gt=0)


class OptionalRarityRequest(BaseModel):
    """Request body with an optional rarity."""

    rarity_id: int | None = Field(default=None, gt=0)


class OwnCollectionResponse(BaseModel):
    """Ownership state of a collection for a user."""

    collection_id: int
    user_id: str
    owned: bool
    created: bool = False
    unclaimed_rewards: int | None = None


class OwnedItemResponse(BaseModel):
    """Copies of one item at one rarity."""

    item_id: int
    rarity_id: int
    rarity_name: str
    rarity_color: str
    rarity_level: int
    copy_count: int
    has_stuck: bool


class OwnedItemsResponse(BaseModel):
    """Every owned (item, rarity) pair in a collection."""

    collection_id: int
    user_id: str
    items: list[OwnedItemResponse] = Field(default_factory=list)


class CopyResponse(BaseModel):
    """A single owned copy."""

    id: int
    item_id: int
    rarity_id: int
    is_stuck: bool
    created_at: datetime
    owned: bool


class MergeResponse(BaseModel):
    """Outcome of a merge."""

    item_id: int
    from_rarity_id: int
    from_rarity_name: str
    next_rarity_id: int
    next_rarity_name: str
    next_rarity_level: int
    new_copy_id: int


class RecycleResponse(BaseModel):
    """Outcome of a recycle."""

    item_id: int
    rewards_granted: int
    rarity_name: str
    rarity_level: int
    unclaimed_rewards: int


class StickResponse(BaseModel):
    """Stick state of an item."""

    stuck: bool
    copy_id: int | None = None
    rarity_id: int | None = None
    rarity_name: str | None = None
    color: str | None = None
    level: int | None = None


def _copy_response(copy: OwnedCopy, owned: bool) -> CopyResponse:
    return CopyResponse(
        id=copy.id,
        item_id=copy.item_id,
        rarity_id=copy.rarity_id,
        is_stuck=copy.is_stuck,
        created_at=copy.created_at,
        owned=owned,
    )


async def _require_item(session: AsyncSession, collection_id: int, item_id: int) -> None:
    """Raise NotFoundError unless the item belongs to the collection."""
    item = await get_collection_item(session, item_id)
    if item is None or item.collection_id != collection_id:
        raise NotFoundError("Item", item_id)


# --- Collection Ownership ---


@router.post("/{collection_id}/own/{user_id}", response_model=OwnCollectionResponse)
async def own_collection(
    collection_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OwnCollectionResponse:
    """
    Take a collection.

    Creates the reward balance row. Taking it again is a no-op.
    """
    if await get_collection(session, collection_id) is None:
        raise NotFoundError("Collection", collection_id)

    user_collection, created = await take_collection(
        session, user_id, collection_id, initial_rewards=settings.initial_rewards
    )
    await commit_or_contention(session, "take_collection")
    return OwnCollectionResponse(
        collection_id=collection_id,
        user_id=user_id,
        owned=True,
        created=created,
        unclaimed_rewards=user_collection.unclaimed_rewards,
    )


@router.delete("/{collection_id}/own/{user_id}", response_model=OwnCollectionResponse)
async def disown_collection(
    collection_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OwnCollectionResponse:
    """Release a collection. Owned copies are kept."""
    await release_collection(session, user_id, collection_id)
    await commit_or_contention(session, "release_collection")
    return OwnCollectionResponse(collection_id=collection_id, user_id=user_id, owned=False)


@router.get("/{collection_id}/items/{user_id}", response_model=OwnedItemsResponse)
async def get_owned_items(
    collection_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OwnedItemsResponse:
    """List owned items with rarity and copy counts, highest rarity first per item."""
    rows = await list_owned_items_with_rarity(session, user_id, collection_id)
    return OwnedItemsResponse(
        collection_id=collection_id,
        user_id=user_id,
        items=[OwnedItemResponse.model_validate(row, from_attributes=True) for row in rows],
    )


# --- Item Actions ---


@router.post(
    "/{collection_id}/items/{item_id}/own/{user_id}",
    response_model=CopyResponse,
)
async def own_item(
    collection_id: int,
    item_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    request: OptionalRarityRequest | None = None,
) -> CopyResponse:
    """Add one copy of an item, at the lowest rarity unless one is given."""
    await _require_item(session, collection_id, item_id)
    rarity_id = request.rarity_id if request else None
    copy = await grant_copy(session, user_id, item_id, rarity_id)
    await commit_or_contention(session, "grant_copy")
    return _copy_response(copy, owned=True)


@router.delete(
    "/{collection_id}/items/{item_id}/own/{user_id}",
    response_model=CopyResponse,
)
async def disown_item(
    collection_id: int,
    item_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CopyResponse:
    """Remove one copy of an item, oldest non-stuck first."""
    await _require_item(session, collection_id, item_id)
    copy = await remove_copy(session, user_id, item_id)
    await commit_or_contention(session, "remove_copy")
    return _copy_response(copy, owned=False)


@router.post(
    "/{collection_id}/items/{item_id}/merge/{user_id}",
    response_model=MergeResponse,
)
async def merge(
    collection_id: int,
    item_id: int,
    user_id: str,
    request: RarityRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MergeResponse:
    """Merge two copies at a rarity into one copy at the next rarity."""
    await _require_item(session, collection_id, item_id)
    result = await merge_items(session, user_id, item_id, request.rarity_id)
    await commit_or_contention(session, "merge")
    return MergeResponse(
        item_id=item_id,
        from_rarity_id=result.from_rarity.id,
        from_rarity_name=result.from_rarity.name,
        next_rarity_id=result.next_rarity.id,
        next_rarity_name=result.next_rarity.name,
        next_rarity_level=result.next_rarity.level,
        new_copy_id=result.new_copy.id,
    )


@router.post(
    "/{collection_id}/items/{item_id}/recycle/{user_id}",
    response_model=RecycleResponse,
)
async def recycle(
    collection_id: int,
    item_id: int,
    user_id: str,
    request: RarityRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RecycleResponse:
    """Recycle three copies at a rarity into reward tokens."""
    await _require_item(session, collection_id, item_id)
    result = await recycle_items(session, user_id, collection_id, item_id, request.rarity_id)
    await commit_or_contention(session, "recycle")
    return RecycleResponse(
        item_id=item_id,
        rewards_granted=result.rewards_granted,
        rarity_name=result.rarity_name,
        rarity_level=result.rarity_level,
        unclaimed_rewards=result.unclaimed_rewards,
    )


@router.post(
    "/{collection_id}/items/{item_id}/stick/{user_id}",
    response_model=StickResponse,
)
async def stick(
    collection_id: int,
    item_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    request: OptionalRarityRequest | None = None,
) -> StickResponse:
    """
    Stick one copy of an item.

    Without a rarity the highest-rarity copy is stuck.
    """
    await _require_item(session, collection_id, item_id)
    rarity_id = request.rarity_id if request else None
    result = await stick_item(session, user_id, item_id, rarity_id)
    await commit_or_contention(session, "stick")
    return StickResponse(
        stuck=True,
        copy_id=result.copy_id,
        rarity_id=result.rarity_id,
        rarity_name=result.rarity_name,
        color=result.color,
        level=result.level,
    )


@router.delete(
    "/{collection_id}/items/{item_id}/stick/{user_id}",
    response_model=StickResponse,
)
async def unstick(
    collection_id: int,
    item_id: int,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> StickResponse:
    """Unstick whichever copy of the item is stuck."""
    await _require_item(session, collection_id, item_id)
    await unstick_item(session, user_id, item_id)
    await commit_or_contention(session, "unstick")
    return StickResponse(stuck=False)
