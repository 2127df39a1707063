from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConflictError(DomainError):
    """Raised when a non-terminal request already exists for the same day."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class StorageError(DomainError):
    """Raised when the local durable store cannot be read or written."""


class RemoteError(DomainError):
    """Base exception for remote API failures."""


class RemoteUnavailableError(RemoteError):
    """Transport failure or server error: retry later."""


class RemoteRejectedError(RemoteError):
    """The server answered but refused the request."""

    def __init__(self, message: str, *, status_code: int, retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def is_permanent_rejection(error: Exception) -> bool:
    """True when replaying the same call can never succeed."""
    return isinstance(error, RemoteRejectedError) and not error.retryable
