"""
Job to seed the default rarity ladder.

Claims cannot mint anything until at least one tier exists. Run once
against a fresh database, or from a deploy hook; an already seeded table
is left alone.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trackdex.config import DEFAULT_RARITIES
from trackdex.db.database import async_session_factory, init_db
from trackdex.db.operations import create_rarity, list_rarities

logger = logging.getLogger(__name__)


async def seed_rarities(
    session: AsyncSession,
    ladder: tuple[tuple[str, str, int], ...] = DEFAULT_RARITIES,
) -> int:
    """
    Insert the ladder if the rarity table is empty.

    Returns:
        Number of tiers created (0 when tiers already exist)
    """
    existing = await list_rarities(session)
    if existing:
        logger.info("Rarity ladder already has %d tiers, skipping", len(existing))
        return 0

    for name, color, level in ladder:
        await create_rarity(session, name, color, level)

    logger.info("Seeded %d rarity tiers", len(ladder))
    return len(ladder)


async def run_seed() -> int:
    """Create tables if needed and seed the ladder in one transaction."""
    await init_db()
    async with async_session_factory() as session:
        created = await seed_rarities(session)
        await session.commit()
    return created


def main() -> None:
    """CLI entry point for seeding rarities."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_seed())


if __name__ == "__main__":
    main()
