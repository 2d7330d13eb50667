"""Exception hierarchy for lexhub.

Validation failures and DNS resolution misses are *not* exceptions: they are
expected outcomes returned as values. The classes here cover infrastructure
faults and bad input to the read API.
"""

from __future__ import annotations


class LexhubError(Exception):
    """Base exception for all lexhub errors."""


class StoreError(LexhubError):
    """A persistence operation failed.

    Attributes:
        operation: Name of the store operation that failed.
        reason: Human-readable description of what went wrong.
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store operation '{operation}' failed: {reason}")


class StoreTimeoutError(StoreError):
    """A store operation exceeded its time budget.

    This is the one failure class the ingestion endpoint answers with a
    redelivery request instead of an acknowledgment.
    """


class UnknownBackendError(LexhubError, ValueError):
    """The requested store backend name is not recognised.

    Attributes:
        backend: The name that was requested.
        available: Backend names that are supported.
    """

    def __init__(self, backend: str, available: tuple[str, ...]) -> None:
        self.backend = backend
        self.available = available
        super().__init__(
            f"Unknown store backend {backend!r}. "
            f"Available backends: {', '.join(available)}"
        )


class InvalidParamError(LexhubError, ValueError):
    """A read API request parameter failed validation.

    Attributes:
        code: Stable machine-readable error code (e.g. ``INVALID_LIMIT``).
        message: Human-readable explanation.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def to_record(self) -> dict[str, dict[str, str]]:
        """Serialize to the API error body shape."""
        return {"error": {"code": self.code, "message": self.message}}
