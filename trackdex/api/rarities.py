"""
Rarity API endpoints.

CRUD for the rarity ladder plus the current draw odds.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.db import (
    create_rarity,
    delete_rarity,
    get_rarity,
    list_rarities,
    rarity_to_model,
    update_rarity,
)
from trackdex.db.database import get_session
from trackdex.models.economy_errors import NotFoundError
from trackdex.services.ledger import commit_or_contention
from trackdex.services.rarity_draw import rarity_distribution

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

router = APIRouter(prefix="/rarities", tags=["rarities"])


class RarityResponse(BaseModel):
    """A single rarity tier."""

    id: int
    name: str
    color: str
    level: int


class RarityCreateRequest(BaseModel):
    """Request model for creating a rarity tier."""

    name: str = Field(..., min_length=1, max_length=100, examples=["Mythic"])
    color: str = Field(..., pattern=HEX_COLOR_PATTERN, examples=["#E91E63"])
    level: int = Field(..., ge=1, description="Position on the ladder, 1 is most common")


class RarityUpdateRequest(BaseModel):
    """Request model for updating a rarity tier. Omitted fields are kept."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    level: int | None = Field(default=None, ge=1)


class RarityOdds(BaseModel):
    """Chance of drawing a tier on a claim."""

    id: int
    name: str
    level: int
    probability: float


class RarityDeleteResponse(BaseModel):
    """Response model for delete operations."""

    id: int
    deleted: bool


@router.get("", response_model=list[RarityResponse])
async def get_rarities(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[RarityResponse]:
    """List every rarity tier, lowest level first."""
    rarities = await list_rarities(session)
    return [RarityResponse.model_validate(rarity, from_attributes=True) for rarity in rarities]


@router.get("/distribution", response_model=list[RarityOdds])
async def get_distribution(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[RarityOdds]:
    """
    Draw probability of each tier.

    Each tier is three times rarer than the one below it by default.
    """
    tiers = [rarity_to_model(rarity) for rarity in await list_rarities(session)]
    odds = rarity_distribution(tiers)
    return [
        RarityOdds(id=tier.id, name=tier.name, level=tier.level, probability=odds[tier.id])
        for tier in tiers
    ]


@router.get("/{rarity_id}", response_model=RarityResponse)
async def get_single_rarity(
    rarity_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RarityResponse:
    """Get one rarity tier."""
    rarity = await get_rarity(session, rarity_id)
    if rarity is None:
        raise NotFoundError("Rarity", rarity_id)
    return RarityResponse.model_validate(rarity, from_attributes=True)


@router.post("", response_model=RarityResponse, status_code=status.HTTP_201_CREATED)
async def post_rarity(
    request: RarityCreateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RarityResponse:
    """Create a rarity tier. Levels must be unique."""
    rarity = await create_rarity(session, request.name, request.color, request.level)
    await commit_or_contention(session, "create_rarity")
    return RarityResponse.model_validate(rarity, from_attributes=True)


@router.put("/{rarity_id}", response_model=RarityResponse)
async def put_rarity(
    rarity_id: int,
    request: RarityUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RarityResponse:
    """Update a rarity tier."""
    rarity = await get_rarity(session, rarity_id)
    if rarity is None:
        raise NotFoundError("Rarity", rarity_id)

    rarity = await update_rarity(
        session, rarity, name=request.name, color=request.color, level=request.level
    )
    await commit_or_contention(session, "update_rarity")
    return RarityResponse.model_validate(rarity, from_attributes=True)


@router.delete("/{rarity_id}", response_model=RarityDeleteResponse)
async def remove_rarity(
    rarity_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RarityDeleteResponse:
    """
    Delete a rarity tier.

    Rejected with 409 while any owned copy still has this rarity.
    """
    deleted = await delete_rarity(session, rarity_id)
    if not deleted:
        raise NotFoundError("Rarity", rarity_id)
    await commit_or_contention(session, "delete_rarity")
    return RarityDeleteResponse(id=rarity_id, deleted=True)
