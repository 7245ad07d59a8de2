"""Domain errors shared by the store adapter, services and HTTP layer."""

from __future__ import annotations


class ReviewsError(Exception):
    """Base class; ``code`` is the stable text sent back to clients."""

    code = "internal_error"


class AuthenticationRequired(ReviewsError):
    """A write was attempted without an authenticated viewer."""

    code = "authentication_required"


class ReviewValidationError(ReviewsError, ValueError):
    """Rejected input; ``field`` tells callers what to complain about."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.code = f"invalid_{field}"


class ReviewNotFound(ReviewsError, LookupError):
    code = "review_not_found"


class StoreUnavailable(ReviewsError, RuntimeError):
    """The backing store call failed (network, permissions, timeouts)."""

    code = "store_unavailable"
