"""
Weighted rarity draw.

Each tier's weight is ``base ** (max_level - level)``, so every step down
the ladder is ``base`` times more likely than the one above it. With the
default five tiers and base 3 the odds are roughly 67 / 22 / 7.4 / 2.5 / 0.8
percent from Common to Legendary.

Pure functions; the random source is injected so draws are reproducible
under a seed.
"""

import random

from trackdex.config import settings
from trackdex.models.rarity import RarityTier, max_level


def rarity_weights(tiers: list[RarityTier], base: int | None = None) -> list[int]:
    """Integer weight for each tier, in the order given."""
    if base is None:
        base = settings.rarity_weight_base
    top = max_level(tiers)
    return [base ** (top - tier.level) for tier in tiers]


def pick_weighted_rarity(
    tiers: list[RarityTier], rng: random.Random, base: int | None = None
) -> int:
    """
    Draw a tier and return its id.

    Walks the cumulative weights and returns the first tier whose running
    total exceeds a uniform roll in ``[0, total)``.

    Raises:
        ValueError: If ``tiers`` is empty
    """
    if not tiers:
        raise ValueError("Cannot draw from an empty rarity ladder")

    weights = rarity_weights(tiers, base)
    roll = rng.random() * sum(weights)

    cumulative = 0
    for tier, weight in zip(tiers, weights, strict=True):
        cumulative += weight
        if roll < cumulative:
            return tier.id

    # Float rounding can leave roll == total
    return tiers[-1].id


def rarity_distribution(
    tiers: list[RarityTier], base: int | None = None
) -> dict[int, float]:
    """Probability of drawing each tier, keyed by tier id."""
    if not tiers:
        return {}
    weights = rarity_weights(tiers, base)
    total = sum(weights)
    return {tier.id: weight / total for tier, weight in zip(tiers, weights, strict=True)}
