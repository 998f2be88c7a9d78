"""
Fixed-shape records produced by the economy engine.

These are what the presentation layer receives; ORM rows never leave the
service layer.
"""

from dataclasses import dataclass
from datetime import datetime

from trackdex.models.rarity import RarityTier


@dataclass(frozen=True)
class OwnedCopy:
    """A single owned copy of an item."""

    id: int
    user_id: str
    item_id: int
    rarity_id: int
    is_stuck: bool
    created_at: datetime


@dataclass(frozen=True)
class ClaimedItem:
    """A freshly minted copy enriched with item and rarity display data."""

    copy: OwnedCopy
    collection_id: int
    track_name: str
    album_name: str | None
    album_cover_url: str | None
    rarity: RarityTier
    unclaimed_rewards: int


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging two copies into one at the next tier."""

    item_id: int
    consumed_copy_ids: tuple[int, ...]
    from_rarity: RarityTier
    next_rarity: RarityTier
    new_copy: OwnedCopy


@dataclass(frozen=True)
class RecycleResult:
    """Outcome of recycling three copies into reward tokens."""

    item_id: int
    consumed_copy_ids: tuple[int, ...]
    rewards_granted: int
    rarity_name: str
    rarity_level: int
    unclaimed_rewards: int


@dataclass(frozen=True)
class StickResult:
    """The copy now protected for a (user, item)."""

    copy_id: int
    rarity_id: int
    rarity_name: str
    color: str
    level: int


@dataclass(frozen=True)
class FreeClaimResult:
    """Tokens granted by the free-claim meter and the advanced timestamp."""

    claimed: int
    last_free_claim: datetime
    unclaimed_rewards: int


@dataclass(frozen=True)
class OwnedItemRarity:
    """Copies a user holds of one item at one rarity."""

    item_id: int
    rarity_id: int
    rarity_name: str
    rarity_color: str
    rarity_level: int
    copy_count: int
    has_stuck: bool


@dataclass(frozen=True)
class CollectionRewards:
    """A user's reward balance and progress in one collection."""

    collection_id: int
    collection_name: str
    cover_image_url: str | None
    unclaimed_rewards: int
    last_free_claim: datetime | None
    total_items: int
    claimed_items: int


@dataclass(frozen=True)
class AccountMergeResult:
    """What moved when one user's ledger was folded into another's."""

    collections_merged: int
    collections_moved: int
    copies_moved: int
