"""
Database CRUD operations.

Provides async functions for the rarity ladder, the item catalog, the
ownership bootstrap and read access to the ledger. Locking reads used by
the economy engine live in ``trackdex.services.ledger``.
"""

from datetime import UTC, datetime

from sqlalchemy import case, delete, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.models.db import (
    CollectionDB,
    CollectionItemDB,
    OwnedCopyDB,
    RarityDB,
    UserCollectionDB,
)
from trackdex.models.economy_errors import InvalidInputError, RarityInUseError
from trackdex.models.ownership import CollectionRewards, OwnedCopy, OwnedItemRarity
from trackdex.models.rarity import RarityTier


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# --- Rarity Operations ---


async def list_rarities(session: AsyncSession) -> list[RarityDB]:
    """Get every rarity tier, lowest level first."""
    result = await session.execute(select(RarityDB).order_by(RarityDB.level.asc()))
    return list(result.scalars().all())


async def get_rarity(session: AsyncSession, rarity_id: int) -> RarityDB | None:
    """Get a rarity tier by id."""
    return await session.get(RarityDB, rarity_id)


async def get_rarity_by_level(session: AsyncSession, level: int) -> RarityDB | None:
    """Get the rarity tier at an exact level."""
    result = await session.execute(select(RarityDB).where(RarityDB.level == level))
    return result.scalar_one_or_none()


async def get_lowest_rarity(session: AsyncSession) -> RarityDB | None:
    """Get the most common tier, or None when no tiers are configured."""
    result = await session.execute(select(RarityDB).order_by(RarityDB.level.asc()).limit(1))
    return result.scalar_one_or_none()


async def create_rarity(session: AsyncSession, name: str, color: str, level: int) -> RarityDB:
    """
    Create a rarity tier.

    Raises InvalidInputError if another tier already sits at ``level``.
    """
    existing = await get_rarity_by_level(session, level)
    if existing:
        raise InvalidInputError("level", f"level {level} is already used by {existing.name}")

    rarity = RarityDB(name=name, color=color, level=level)
    session.add(rarity)
    await session.flush()
    return rarity


async def update_rarity(
    session: AsyncSession,
    rarity: RarityDB,
    name: str | None = None,
    color: str | None = None,
    level: int | None = None,
) -> RarityDB:
    """Update the given fields of a rarity tier, keeping levels unique."""
    if level is not None and level != rarity.level:
        existing = await get_rarity_by_level(session, level)
        if existing:
            raise InvalidInputError("level", f"level {level} is already used by {existing.name}")
        rarity.level = level
    if name is not None:
        rarity.name = name
    if color is not None:
        rarity.color = color

    await session.flush()
    return rarity


async def delete_rarity(session: AsyncSession, rarity_id: int) -> bool:
    """
    Delete a rarity tier.

    Returns True if deleted, False if not found.
    Raises RarityInUseError if any owned copy still references the tier.
    """
    rarity = await get_rarity(session, rarity_id)
    if not rarity:
        return False

    in_use = await session.scalar(
        select(func.count()).select_from(OwnedCopyDB).where(OwnedCopyDB.rarity_id == rarity_id)
    )
    if in_use:
        raise RarityInUseError(rarity_id, int(in_use))

    await session.delete(rarity)
    await session.flush()
    return True


def rarity_to_model(rarity: RarityDB) -> RarityTier:
    """Convert a database rarity to a domain model."""
    return RarityTier(id=rarity.id, name=rarity.name, color=rarity.color, level=rarity.level)


# --- Catalog Operations ---


async def create_collection(
    session: AsyncSession, name: str, cover_image_url: str | None = None
) -> CollectionDB:
    """Create an empty collection."""
    collection = CollectionDB(name=name, cover_image_url=cover_image_url)
    session.add(collection)
    await session.flush()
    return collection


async def get_collection(session: AsyncSession, collection_id: int) -> CollectionDB | None:
    """Get a collection by id."""
    return await session.get(CollectionDB, collection_id)


async def add_collection_item(
    session: AsyncSession,
    collection_id: int,
    track_name: str,
    album_name: str | None = None,
    album_cover_url: str | None = None,
    position: int | None = None,
) -> CollectionItemDB:
    """Add a collectible track to a collection."""
    item = CollectionItemDB(
        collection_id=collection_id,
        track_name=track_name,
        album_name=album_name,
        album_cover_url=album_cover_url,
        position=position,
    )
    session.add(item)
    await session.flush()
    return item


async def get_collection_item(session: AsyncSession, item_id: int) -> CollectionItemDB | None:
    """Get a collection item by id."""
    return await session.get(CollectionItemDB, item_id)


async def list_collection_item_ids(session: AsyncSession, collection_id: int) -> list[int]:
    """Ids of every item in a collection, in a stable order."""
    result = await session.execute(
        select(CollectionItemDB.id)
        .where(CollectionItemDB.collection_id == collection_id)
        .order_by(CollectionItemDB.id.asc())
    )
    return list(result.scalars().all())


# --- Ownership Bootstrap ---


async def get_user_collection(
    session: AsyncSession, user_id: str, collection_id: int
) -> UserCollectionDB | None:
    """
    Get the reward balance row for (user, collection).

    Returns None if the user never took the collection.
    """
    result = await session.execute(
        select(UserCollectionDB).where(
            UserCollectionDB.user_id == user_id,
            UserCollectionDB.collection_id == collection_id,
        )
    )
    return result.scalar_one_or_none()


async def take_collection(
    session: AsyncSession, user_id: str, collection_id: int, initial_rewards: int = 0
) -> tuple[UserCollectionDB, bool]:
    """
    Get existing balance row or create one.

    Initial rewards are only granted when the row is created.

    Returns:
        Tuple of (user_collection, created) where created is True if new.
    """
    existing = await get_user_collection(session, user_id, collection_id)
    if existing:
        return existing, False

    user_collection = UserCollectionDB(
        user_id=user_id,
        collection_id=collection_id,
        unclaimed_rewards=initial_rewards,
    )
    session.add(user_collection)
    await session.flush()
    return user_collection, True


async def release_collection(session: AsyncSession, user_id: str, collection_id: int) -> bool:
    """
    Remove a user's balance row for a collection.

    Returns True if deleted, False if not found. Owned copies are kept.
    """
    result = await session.execute(
        delete(UserCollectionDB).where(
            UserCollectionDB.user_id == user_id,
            UserCollectionDB.collection_id == collection_id,
        )
    )
    return bool(result.rowcount)  # type: ignore[attr-defined]


async def list_user_collections_with_rewards(
    session: AsyncSession, user_id: str
) -> list[CollectionRewards]:
    """
    Every collection the user took, with balance and progress.

    ``claimed_items`` counts distinct items the user owns at least one copy of.
    """
    total_items = (
        select(func.count(CollectionItemDB.id))
        .where(CollectionItemDB.collection_id == UserCollectionDB.collection_id)
        .correlate(UserCollectionDB)
        .scalar_subquery()
    )
    claimed_items = (
        select(func.count(distinct(OwnedCopyDB.item_id)))
        .join(CollectionItemDB, CollectionItemDB.id == OwnedCopyDB.item_id)
        .where(
            CollectionItemDB.collection_id == UserCollectionDB.collection_id,
            OwnedCopyDB.user_id == UserCollectionDB.user_id,
        )
        .correlate(UserCollectionDB)
        .scalar_subquery()
    )

    result = await session.execute(
        select(
            UserCollectionDB.collection_id,
            CollectionDB.name,
            CollectionDB.cover_image_url,
            UserCollectionDB.unclaimed_rewards,
            UserCollectionDB.last_free_claim,
            total_items.label("total_items"),
            claimed_items.label("claimed_items"),
        )
        .join(CollectionDB, CollectionDB.id == UserCollectionDB.collection_id)
        .where(UserCollectionDB.user_id == user_id)
        .order_by(CollectionDB.name.asc())
    )

    return [
        CollectionRewards(
            collection_id=row.collection_id,
            collection_name=row.name,
            cover_image_url=row.cover_image_url,
            unclaimed_rewards=row.unclaimed_rewards,
            last_free_claim=as_utc(row.last_free_claim) if row.last_free_claim else None,
            total_items=int(row.total_items or 0),
            claimed_items=int(row.claimed_items or 0),
        )
        for row in result.all()
    ]


# --- Ledger Reads ---


async def add_owned_copy(
    session: AsyncSession,
    user_id: str,
    item_id: int,
    rarity_id: int,
    created_at: datetime | None = None,
) -> OwnedCopyDB:
    """Append one non-stuck copy to the ledger."""
    copy = OwnedCopyDB(user_id=user_id, item_id=item_id, rarity_id=rarity_id, is_stuck=False)
    if created_at is not None:
        copy.created_at = created_at
    session.add(copy)
    await session.flush()
    return copy


async def list_owned_copies(
    session: AsyncSession, user_id: str, item_id: int, rarity_id: int | None = None
) -> list[OwnedCopyDB]:
    """Copies of an item owned by a user, oldest first."""
    stmt = select(OwnedCopyDB).where(
        OwnedCopyDB.user_id == user_id,
        OwnedCopyDB.item_id == item_id,
    )
    if rarity_id is not None:
        stmt = stmt.where(OwnedCopyDB.rarity_id == rarity_id)
    result = await session.execute(
        stmt.order_by(OwnedCopyDB.created_at.asc(), OwnedCopyDB.id.asc())
    )
    return list(result.scalars().all())


async def list_owned_items_with_rarity(
    session: AsyncSession, user_id: str, collection_id: int
) -> list[OwnedItemRarity]:
    """
    One row per owned (item, rarity) in a collection with its copy count.

    Ordered by item, then highest level first.
    """
    result = await session.execute(
        select(
            OwnedCopyDB.item_id,
            RarityDB.id.label("rarity_id"),
            RarityDB.name,
            RarityDB.color,
            RarityDB.level,
            func.count(OwnedCopyDB.id).label("copy_count"),
            func.max(case((OwnedCopyDB.is_stuck, 1), else_=0)).label("has_stuck"),
        )
        .join(CollectionItemDB, CollectionItemDB.id == OwnedCopyDB.item_id)
        .join(RarityDB, RarityDB.id == OwnedCopyDB.rarity_id)
        .where(
            OwnedCopyDB.user_id == user_id,
            CollectionItemDB.collection_id == collection_id,
        )
        .group_by(OwnedCopyDB.item_id, RarityDB.id, RarityDB.name, RarityDB.color, RarityDB.level)
        .order_by(OwnedCopyDB.item_id.asc(), RarityDB.level.desc())
    )
    return [
        OwnedItemRarity(
            item_id=row.item_id,
            rarity_id=row.rarity_id,
            rarity_name=row.name,
            rarity_color=row.color,
            rarity_level=row.level,
            copy_count=int(row.copy_count),
            has_stuck=bool(row.has_stuck),
        )
        for row in result.all()
    ]


def copy_to_model(copy: OwnedCopyDB) -> OwnedCopy:
    """Convert a database copy to a domain model."""
    return OwnedCopy(
        id=copy.id,
        user_id=copy.user_id,
        item_id=copy.item_id,
        rarity_id=copy.rarity_id,
        is_stuck=copy.is_stuck,
        created_at=as_utc(copy.created_at),
    )
