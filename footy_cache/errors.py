"""Exception hierarchy for the match-data cache.

Exception Hierarchy:
    FootyCacheError (base)
    ├── TierError - A cache tier operation failed
    │   └── RemoteTierError - Redis failure or timeout
    ├── CacheSerializationError - Entry encode/decode failure
    └── OriginFetchError - Upstream call failed after retry

Tier and serialization errors are absorbed by the cache engine. Only
OriginFetchError travels as far as the cached access wrapper, which turns
it into a degraded payload.
"""

from typing import Any


class FootyCacheError(Exception):
    """Base exception for all cache errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error details.
        recoverable: Whether the caller can carry on without the operation.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class TierError(FootyCacheError):
    """A cache tier operation failed.

    Attributes:
        tier: Name of the tier ("memory" or "remote").
        operation: Operation that failed (get, set, delete, ...).
    """

    def __init__(
        self,
        message: str,
        *,
        tier: str,
        operation: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=True)
        self.tier = tier
        self.operation = operation

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base.update({"tier": self.tier, "operation": self.operation})
        return base


class RemoteTierError(TierError):
    """Redis was unreachable, slow, or rejected the command."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, tier="remote", operation=operation, details=details)


class CacheSerializationError(FootyCacheError):
    """A value could not be encoded or decoded for storage."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message, details={"key": key} if key else None)
        self.key = key


class OriginFetchError(FootyCacheError):
    """The upstream data provider failed, including the retry.

    Attributes:
        operation: Name of the origin query.
        attempts: Number of attempts made.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        attempts: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.operation = operation
        self.attempts = attempts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base.update({"operation": self.operation, "attempts": self.attempts})
        return base
