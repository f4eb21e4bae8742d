"""Domain error taxonomy shared by services and the API layer.

Services raise these exceptions; ``huddle.main`` maps them onto HTTP
responses and the chat socket turns them into ``error`` frames. Each class
carries the status code it is rendered with so the mapping lives in one place.
"""

from __future__ import annotations

from fastapi import status


class HuddleError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def public_detail(self) -> str:
        """Message that is safe to show to an untrusted caller."""
        return self.detail


class NotFound(HuddleError):
    """Referenced user, post, comment, message or notification is absent."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Forbidden(HuddleError):
    """The actor lacks rights over the target entity."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class AlreadyExists(HuddleError):
    """The relationship being created is already present."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already exists"


class InvalidOperation(HuddleError):
    """The operation is not permitted in the current state (e.g. self-follow)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid operation"


class ValidationError(HuddleError):
    """Required input is missing or empty."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class StorageFailure(HuddleError):
    """The durable store rejected a read or write.

    The underlying cause is logged by the raiser and chained via ``__cause__``;
    it is never echoed back to the caller.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Storage failure"

    @property
    def public_detail(self) -> str:
        return self.default_detail


__all__ = [
    "AlreadyExists",
    "Forbidden",
    "HuddleError",
    "InvalidOperation",
    "NotFound",
    "StorageFailure",
    "ValidationError",
]
