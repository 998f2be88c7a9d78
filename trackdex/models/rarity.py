from dataclasses import dataclass


@dataclass(frozen=True)
class RarityTier:
    """
    One rung of the rarity ladder.

    Level 1 is the most common tier. The tier above a given tier is the one
    whose level is exactly one higher.
    """

    id: int
    name: str
    color: str
    level: int


def max_level(tiers: list[RarityTier]) -> int:
    """Highest level on the ladder."""
    return max(tier.level for tier in tiers)
