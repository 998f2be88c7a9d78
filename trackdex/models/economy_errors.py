"""
Economy errors raised by the claim, merge, recycle, stick and free-claim
engines.

Each maps to one FailureKind and one HTTP status. ContentionError is the
only retryable kind.
"""

from typing import Any

from trackdex.models.failure import FailureKind, KnownError


class NoOwnershipError(KnownError):
    """The user has no reward balance for the collection (never took it)."""

    def __init__(self, user_id: str, collection_id: int):
        self.user_id = user_id
        self.collection_id = collection_id
        super().__init__(
            kind=FailureKind.NO_OWNERSHIP,
            message="User does not own this collection",
            detail=f"user={user_id} collection={collection_id}",
            suggestion="Take the collection before claiming or recycling.",
            status_code=403,
        )


class InsufficientBalanceError(KnownError):
    """A claim was attempted with no unclaimed rewards."""

    def __init__(self, balance: int):
        self.balance = balance
        super().__init__(
            kind=FailureKind.INSUFFICIENT_BALANCE,
            message="No unclaimed rewards available",
            detail=f"unclaimed_rewards={balance}",
            suggestion="Earn rewards or wait for the next free claim.",
            status_code=400,
        )


class InsufficientCopiesError(KnownError):
    """Merge or recycle found fewer non-stuck copies than it consumes."""

    def __init__(self, action: str, required: int, available: int):
        self.action = action
        self.required = required
        self.available = available
        super().__init__(
            kind=FailureKind.INSUFFICIENT_COPIES,
            message=f"Not enough copies to {action}: need {required}, have {available}",
            detail="Stuck copies are never consumed",
            suggestion="Unstick a copy or collect more duplicates.",
            status_code=409,
        )


class MaxTierReachedError(KnownError):
    """Merge was attempted at the top of the rarity ladder."""

    def __init__(self, rarity_name: str, level: int):
        self.rarity_name = rarity_name
        self.level = level
        super().__init__(
            kind=FailureKind.MAX_TIER_REACHED,
            message=f"{rarity_name} is already the maximum rarity",
            detail=f"no tier at level {level + 1}",
            status_code=409,
        )


class NotOwnedError(KnownError):
    """No copy matched a stick or removal request."""

    def __init__(self, item_id: int, rarity_id: int | None = None, reason: str | None = None):
        self.item_id = item_id
        self.rarity_id = rarity_id
        detail = f"item={item_id}"
        if rarity_id is not None:
            detail += f" rarity={rarity_id}"
        super().__init__(
            kind=FailureKind.NOT_OWNED,
            message=reason or "You do not own a copy of this item",
            detail=detail,
            status_code=404,
        )


class TooSoonError(KnownError):
    """A free claim was attempted before a full interval elapsed."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            kind=FailureKind.TOO_SOON,
            message="No free claims available yet",
            detail=f"next free claim in {retry_after_seconds}s",
            suggestion="Come back when the meter fills up.",
            status_code=400,
        )


class NotFoundError(KnownError):
    """An unknown rarity, item or collection id was passed in."""

    def __init__(self, resource_type: str, identifier: Any = None):
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=message,
            status_code=404,
        )


class RarityInUseError(KnownError):
    """A rarity tier still referenced by owned copies cannot be deleted."""

    def __init__(self, rarity_id: int, copies: int):
        self.rarity_id = rarity_id
        self.copies = copies
        super().__init__(
            kind=FailureKind.RARITY_IN_USE,
            message="Cannot delete rarity that is in use by owned items",
            detail=f"{copies} owned copies reference rarity {rarity_id}",
            status_code=409,
        )


class InvalidInputError(KnownError):
    """Malformed input rejected before touching the database."""

    def __init__(self, field: str, reason: str):
        self.field = field
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=f"Invalid {field}: {reason}",
            status_code=400,
        )


class ContentionError(KnownError):
    """
    The transaction lost a lock race (lock timeout, deadlock, busy database).

    Nothing was applied. The caller should retry with backoff.
    """

    is_retryable = True

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        super().__init__(
            kind=FailureKind.CONTENTION,
            message="The request collided with another update and was not applied",
            detail=detail or operation,
            suggestion="Retry the request in a moment.",
            status_code=503,
        )
