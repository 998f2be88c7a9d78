"""
Failure Classification: Known, Explainable Economy Failures.

Every rule the economy engine enforces has a kind here. Engine operations
raise a ``KnownError`` subclass before mutating anything, so a failed
request never leaves partial state behind.

INVARIANT: No raw 500 errors for business-rule failures.

The API layer renders every KnownError through ``ErrorResponse`` with the
error's own status code. Only errors flagged ``is_retryable`` may be
retried by the caller.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"
    NO_OWNERSHIP = "no_ownership"
    NOT_OWNED = "not_owned"

    # Economy rule violations
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_COPIES = "insufficient_copies"
    MAX_TIER_REACHED = "max_tier_reached"
    TOO_SOON = "too_soon"

    # Configuration surface
    RARITY_IN_USE = "rarity_in_use"

    # Concurrency
    CONTENTION = "contention"

    # Unknown
    UNKNOWN = "unknown"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ErrorResponse(BaseModel):
    """Response body for every failed economy request."""

    failure: FailureDetail
    retryable: bool = Field(
        default=False,
        description="True if the same request may succeed when retried",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    is_retryable: bool = False

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to an ErrorResponse."""
        return ErrorResponse(
            failure=FailureDetail(
                kind=self.kind,
                message=self.message,
                detail=self.detail,
                suggestion=self.suggestion,
            ),
            retryable=self.is_retryable,
        )


STANDARD_UNKNOWN_MESSAGE = "Something went wrong and the operation was not applied."


def create_unknown_failure(exception: Exception) -> ErrorResponse:
    """
    Create an unknown failure response from an exception.

    The message is fixed; only the exception type is exposed.
    """
    return ErrorResponse(
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_UNKNOWN_MESSAGE,
            detail=type(exception).__name__,
            suggestion="If this persists, please report the issue.",
        ),
        retryable=False,
    )


def failure_payload(error: KnownError) -> dict[str, Any]:
    """JSON-ready body for a KnownError."""
    return error.to_response().model_dump(mode="json")
