from trackdex.models.economy_errors import (
    ContentionError,
    InsufficientBalanceError,
    InsufficientCopiesError,
    InvalidInputError,
    MaxTierReachedError,
    NoOwnershipError,
    NotFoundError,
    NotOwnedError,
    RarityInUseError,
    TooSoonError,
)
from trackdex.models.failure import (
    ErrorResponse,
    FailureDetail,
    FailureKind,
    KnownError,
    create_unknown_failure,
    failure_payload,
)
from trackdex.models.ownership import (
    AccountMergeResult,
    ClaimedItem,
    CollectionRewards,
    FreeClaimResult,
    MergeResult,
    OwnedCopy,
    OwnedItemRarity,
    RecycleResult,
    StickResult,
)
from trackdex.models.rarity import RarityTier, max_level

__all__ = [
    "AccountMergeResult",
    "ClaimedItem",
    "CollectionRewards",
    "ContentionError",
    "ErrorResponse",
    "FailureDetail",
    "FailureKind",
    "FreeClaimResult",
    "InsufficientBalanceError",
    "InsufficientCopiesError",
    "InvalidInputError",
    "KnownError",
    "MaxTierReachedError",
    "MergeResult",
    "NoOwnershipError",
    "NotFoundError",
    "NotOwnedError",
    "OwnedCopy",
    "OwnedItemRarity",
    "RarityInUseError",
    "RarityTier",
    "RecycleResult",
    "StickResult",
    "TooSoonError",
    "create_unknown_failure",
    "failure_payload",
    "max_level",
]
