"""Abstract base class and shared plumbing for DNS provider adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Self

import httpx

from dns_manager.errors import AuthenticationError, ProviderError, RateLimitError
from dns_manager.models import (
    CreateRecordInput,
    DNSLine,
    ProviderDomain,
    ProviderRecord,
    UpdateRecordInput,
)
from dns_manager.providers.util import parse_retry_after

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ProviderCapabilities:
    """What an adapter can do beyond the required contract.

    ``batch_writes`` means the vendor has a true bulk endpoint;
    ``parallel_writes`` means independent record mutations may be issued
    concurrently. Adapters with neither must be driven one request at a time.
    """

    proxied: bool = False
    geo_routing: bool = False
    batch_writes: bool = False
    parallel_writes: bool = False


@dataclass(frozen=True)
class CredentialField:
    name: str
    label: str
    secret: bool = True
    required: bool = True
    help_text: str = ""


@dataclass(frozen=True)
class ProviderMeta:
    name: str
    display_name: str
    description: str
    website: str
    capabilities: ProviderCapabilities
    credential_fields: tuple[CredentialField, ...]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "website": self.website,
            "capabilities": {
                "proxied": self.capabilities.proxied,
                "geo_routing": self.capabilities.geo_routing,
                "batch_writes": self.capabilities.batch_writes,
                "parallel_writes": self.capabilities.parallel_writes,
            },
            "credential_fields": [
                {"name": f.name, "label": f.label, "secret": f.secret, "required": f.required}
                for f in self.credential_fields
            ],
        }


class DnsProvider(ABC):
    """Unified interface every DNS provider adapter implements.

    Only the exceptions in ``dns_manager.errors`` escape an adapter. Adapters
    never retry; a ``RateLimitError`` is handed to the caller as-is.
    """

    meta: ClassVar[ProviderMeta]

    _client: httpx.Client

    @classmethod
    def _require_credentials(cls, credentials: Mapping[str, str]) -> dict[str, str]:
        """Return the credential fields declared in ``meta``, raising ValueError for missing ones."""
        values: dict[str, str] = {}
        for spec in cls.meta.credential_fields:
            value = credentials.get(spec.name)
            if not value:
                if spec.required:
                    raise ValueError(f"{cls.meta.display_name} credential '{spec.name}' is required")
                continue
            values[spec.name] = value
        return values

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- HTTP plumbing ---

    def _error(self, message: str, code: str = "UNKNOWN", details: dict[str, Any] | None = None) -> ProviderError:
        return ProviderError(message, code, self.meta.name, details)

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue a request and apply the status mapping shared by every vendor.

        Raises:
            ProviderError: On transport failure (code ``NETWORK_ERROR``).
            AuthenticationError: On HTTP 401/403.
            RateLimitError: On HTTP 429, honouring ``Retry-After``.
        """
        logger.debug("%s %s %s", self.meta.name, method, url.split("?", 1)[0])
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise self._error(
                f"Request to {self.meta.display_name} failed: {exc}", "NETWORK_ERROR"
            ) from exc

        if resp.status_code in (401, 403):
            raise AuthenticationError(self.meta.name, {"status": resp.status_code, "body": resp.text[:500]})
        if resp.status_code == 429:
            raise RateLimitError(self.meta.name, parse_retry_after(resp.headers.get("Retry-After")))
        return resp

    def _json(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise self._error(
                f"Invalid JSON response from {self.meta.display_name} (HTTP {resp.status_code})",
                "INVALID_RESPONSE",
                {"status": resp.status_code, "body": resp.text[:500]},
            ) from exc

    # --- contract ---

    def validate_credentials(self) -> bool:
        """Return False when the credentials are rejected; re-raise any other failure."""
        try:
            self._check_credentials()
        except AuthenticationError:
            logger.info("%s rejected the supplied credentials", self.meta.display_name)
            return False
        return True

    def _check_credentials(self) -> None:
        """Cheapest authenticated call for this vendor. Override where listing zones is expensive."""
        self.list_domains()

    @abstractmethod
    def list_domains(self) -> list[ProviderDomain]:
        """Return every zone visible to the credentials."""

    @abstractmethod
    def get_domain(self, domain_id: str) -> ProviderDomain:
        """Return one zone.

        Raises:
            DomainNotFoundError: If the provider has no such zone.
        """

    @abstractmethod
    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        """Return every record of a zone, following vendor pagination."""

    @abstractmethod
    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        """Create a record and return it as the provider stored it."""

    @abstractmethod
    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        """Update a record. Fields left as ``None`` in ``data`` keep their current remote value.

        Raises:
            RecordNotFoundError: If the record does not exist.
        """

    @abstractmethod
    def delete_record(self, domain_id: str, record_id: str) -> None:
        """Delete a record.

        Raises:
            RecordNotFoundError: If the record does not exist.
        """

    def list_lines(self, domain_id: str) -> list[DNSLine]:
        raise self._error(
            f"{self.meta.display_name} does not support smart resolution lines", "UNSUPPORTED"
        )

    def batch_create_records(
        self, domain_id: str, inputs: Sequence[CreateRecordInput]
    ) -> list[ProviderRecord]:
        """Create several records. The default issues one request per record, in order."""
        return [self.create_record(domain_id, data) for data in inputs]

    def batch_delete_records(self, domain_id: str, record_ids: Sequence[str]) -> None:
        """Delete several records. The default issues one request per record, in order."""
        for record_id in record_ids:
            self.delete_record(domain_id, record_id)
