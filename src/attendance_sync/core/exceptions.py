from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class SyncError(Exception):
    """Base exception for failures talking to the remote server or applying its data."""


class NetworkFailure(SyncError):
    """Connection error or timeout; retried on the next cycle."""


class ServerError(SyncError):
    """Non-2xx response or a payload with ``success: false``."""

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.status = status


class NonJSONResponse(ServerError):
    """The server answered with something other than JSON (e.g. an HTML error page)."""


class TransactionFailure(SyncError):
    """A storage transaction was aborted and fully rolled back."""
