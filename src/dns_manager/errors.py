"""Error taxonomy shared by every provider adapter and the sync engine.

Adapters translate vendor failures into these types and nothing else; callers
branch on the exception class or on ``ProviderError.kind``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

DEFAULT_RETRY_AFTER = 60


class ErrorKind(StrEnum):
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    DOMAIN_NOT_FOUND = "domain_not_found"
    RECORD_NOT_FOUND = "record_not_found"
    PROVIDER = "provider"


class ProviderError(Exception):
    """Failure reported by (or while talking to) a DNS provider."""

    kind: ErrorKind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN",
        provider: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.provider = provider
        self.details = dict(details or {})

    def to_dict(self) -> dict:
        return {
            "kind": str(self.kind),
            "message": self.message,
            "code": self.code,
            "provider": self.provider,
            "details": dict(self.details),
        }


class AuthenticationError(ProviderError):
    kind = ErrorKind.AUTHENTICATION

    def __init__(self, provider: str, details: dict[str, Any] | None = None) -> None:
        super().__init__("Authentication failed", "AUTH_FAILED", provider, details)


class RateLimitError(ProviderError):
    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        provider: str,
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__("Rate limit exceeded", "RATE_LIMIT", provider, details)
        self.retry_after = DEFAULT_RETRY_AFTER if retry_after is None else retry_after


class DomainNotFoundError(ProviderError):
    kind = ErrorKind.DOMAIN_NOT_FOUND

    def __init__(self, provider: str, domain_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Domain not found: {domain_id}", "DOMAIN_NOT_FOUND", provider, details)
        self.domain_id = domain_id


class RecordNotFoundError(ProviderError):
    kind = ErrorKind.RECORD_NOT_FOUND

    def __init__(self, provider: str, record_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Record not found: {record_id}", "RECORD_NOT_FOUND", provider, details)
        self.record_id = record_id


class UnknownProviderError(ValueError):
    """Raised by the registry for a provider name it has no factory for."""


class RecordValidationError(ValueError):
    """Record input rejected before it is sent to a provider."""


class StoreLookupError(LookupError):
    """A local id does not exist in the mirror store."""


class SyncError(Exception):
    """Mirror or history mutation failed after changes were detected.

    Already-applied mutations are left in place; the next sync re-observes
    whatever is still out of date.
    """

    def __init__(self, domain_id: str, sync_batch_id: str, message: str) -> None:
        super().__init__(message)
        self.domain_id = domain_id
        self.sync_batch_id = sync_batch_id
