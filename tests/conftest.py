import itertools
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from trackdex.config import DEFAULT_RARITIES
from trackdex.db.database import get_session
from trackdex.db.operations import (
    add_collection_item,
    add_owned_copy,
    create_collection,
    create_rarity,
    take_collection,
)
from trackdex.main import app
from trackdex.models.db import Base, CollectionDB, CollectionItemDB, OwnedCopyDB, RarityDB

USER_ID = "user-123"


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session(async_engine) -> AsyncSession:
    """Provide a database session for tests."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
async def client(async_engine):
    """Provide an async test client with overridden database session."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def ladder(session: AsyncSession) -> list[RarityDB]:
    """The default five-tier ladder, lowest level first."""
    tiers = [
        await create_rarity(session, name, color, level) for name, color, level in DEFAULT_RARITIES
    ]
    await session.commit()
    return tiers


@pytest.fixture
async def catalog(session: AsyncSession) -> tuple[CollectionDB, list[CollectionItemDB]]:
    """A collection with three tracks."""
    collection = await create_collection(session, "Road Trip", "https://img.example/cover.jpg")
    items = [
        await add_collection_item(
            session, collection.id, track, album_name="Album", position=position
        )
        for position, track in enumerate(["Intro", "Anthem", "Outro"], start=1)
    ]
    await session.commit()
    return collection, items


@pytest.fixture
async def owned_catalog(
    session: AsyncSession, catalog: tuple[CollectionDB, list[CollectionItemDB]]
) -> tuple[CollectionDB, list[CollectionItemDB]]:
    """The catalog, taken by USER_ID with a zero balance."""
    collection, _ = catalog
    await take_collection(session, USER_ID, collection.id)
    await session.commit()
    return catalog


@pytest.fixture
def add_copies(session: AsyncSession):
    """
    Factory adding copies with strictly increasing creation times.

    Times keep increasing across calls within a test, so copies added by a
    later call are always younger.
    """
    clock = itertools.count()
    base = datetime(2026, 1, 1, tzinfo=UTC)

    async def _add(
        item_id: int, rarity_id: int, count: int = 1, user_id: str = USER_ID
    ) -> list[OwnedCopyDB]:
        copies = [
            await add_owned_copy(
                session,
                user_id,
                item_id,
                rarity_id,
                created_at=base + timedelta(seconds=next(clock)),
            )
            for _ in range(count)
        ]
        await session.commit()
        return copies

    return _add
