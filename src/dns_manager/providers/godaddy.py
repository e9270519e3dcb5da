"""GoDaddy DNS provider: v1 domains API with ``sso-key`` authentication.

GoDaddy has no per-record identifiers: records are addressed by
``(type, name)``, so this adapter synthesizes ``"{name}-{type}"`` ids. Two
records sharing a type and name cannot be told apart, and changing either in
an update leaves the record under its old id.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import httpx

from dns_manager.errors import DomainNotFoundError, ProviderError, RecordNotFoundError
from dns_manager.models import CreateRecordInput, ProviderDomain, ProviderRecord, UpdateRecordInput
from dns_manager.providers.base import (
    DEFAULT_TIMEOUT,
    CredentialField,
    DnsProvider,
    ProviderCapabilities,
    ProviderMeta,
)
from dns_manager.providers.util import absolute_name, merge_value, relative_name

logger = logging.getLogger(__name__)

_API_BASE = "https://api.godaddy.com"
_DEFAULT_TTL = 600
_DOMAINS_LIMIT = 500

_DOMAIN_STATUS = {
    "ACTIVE": "active",
    "PENDING": "pending",
    "PENDING_TRANSFER": "pending",
    "CANCELLED": "inactive",
    "EXPIRED": "inactive",
}


def synthetic_id(name: str, record_type: str) -> str:
    return f"{name}-{record_type}"


def parse_synthetic_id(record_id: str) -> tuple[str, str]:
    """Inverse of ``synthetic_id``; names may contain dashes, types never do."""
    name, sep, record_type = record_id.rpartition("-")
    if not sep or not name or not record_type:
        raise ValueError(f"Invalid GoDaddy record id: '{record_id}'")
    return name, record_type


class GoDaddyProvider(DnsProvider):
    """DNS provider backed by the GoDaddy domains API."""

    meta = ProviderMeta(
        name="godaddy",
        display_name="GoDaddy",
        description="GoDaddy registrar DNS",
        website="https://www.godaddy.com",
        capabilities=ProviderCapabilities(),
        credential_fields=(
            CredentialField("apiKey", "API Key", secret=False),
            CredentialField("apiSecret", "API Secret"),
        ),
    )

    def __init__(
        self,
        credentials: Mapping[str, str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        _http_client: httpx.Client | None = None,
    ) -> None:
        creds = self._require_credentials(credentials)
        self._client = _http_client or httpx.Client(
            headers={"Authorization": f"sso-key {creds['apiKey']}:{creds['apiSecret']}"},
            timeout=timeout,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        resp = self._send(method, f"{_API_BASE}{path}", params=params, json=json)
        if resp.is_success:
            if resp.status_code == 204 or not resp.content:
                return None
            return self._json(resp)

        try:
            error = resp.json()
        except ValueError:
            error = {"message": resp.text}
        raise self._error(
            error.get("message") or f"HTTP {resp.status_code}",
            error.get("code") or str(resp.status_code),
            {"status": resp.status_code, "response": error},
        )

    @staticmethod
    def _is_not_found(exc: ProviderError) -> bool:
        return exc.details.get("status") == 404

    def _check_credentials(self) -> None:
        self._request("GET", "/v1/domains", params={"limit": 1})

    def list_domains(self) -> list[ProviderDomain]:
        domains = self._request("GET", "/v1/domains", params={"limit": _DOMAINS_LIMIT}) or []
        return [self._map_domain(item) for item in domains]

    def get_domain(self, domain_id: str) -> ProviderDomain:
        try:
            item = self._request("GET", f"/v1/domains/{domain_id}")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise DomainNotFoundError(self.meta.name, domain_id, exc.details) from exc
            raise
        return self._map_domain(item)

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        try:
            records = self._request("GET", f"/v1/domains/{domain_id}/records") or []
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise DomainNotFoundError(self.meta.name, domain_id, exc.details) from exc
            raise
        return [self._map_record(record, domain_id) for record in records]

    def _put_records(self, domain_id: str, record: ProviderRecord) -> None:
        name = relative_name(record.name, domain_id)
        entry: dict[str, Any] = {"data": record.content, "ttl": record.ttl}
        if record.priority is not None:
            entry["priority"] = record.priority
        self._request("PUT", f"/v1/domains/{domain_id}/records/{record.type}/{name}", json=[entry])

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        name = relative_name(data.name, domain_id)
        record = ProviderRecord(
            id=synthetic_id(name, data.type),
            type=data.type,
            name=absolute_name(name, domain_id),
            content=data.content,
            ttl=data.ttl or _DEFAULT_TTL,
            priority=data.priority,
        )
        self._put_records(domain_id, record)
        logger.info("Created %s record %s in GoDaddy domain %s", data.type, name, domain_id)
        return record

    def _find_record(self, domain_id: str, record_id: str) -> ProviderRecord:
        for record in self.list_records(domain_id):
            if record.id == record_id:
                return record
        raise RecordNotFoundError(self.meta.name, record_id)

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        existing = self._find_record(domain_id, record_id)
        name = relative_name(merge_value(data.name, existing.name), domain_id)
        record_type = merge_value(data.type, existing.type)
        record = ProviderRecord(
            id=synthetic_id(name, record_type),
            type=record_type,
            name=absolute_name(name, domain_id),
            content=merge_value(data.content, existing.content),
            ttl=merge_value(data.ttl, existing.ttl),
            priority=merge_value(data.priority, existing.priority),
        )
        self._put_records(domain_id, record)
        if record.id != record_id:
            logger.warning(
                "GoDaddy record %s was rewritten as %s; the old record is left in place",
                record_id,
                record.id,
            )
        logger.info("Updated record %s in GoDaddy domain %s", record.id, domain_id)
        return record

    def delete_record(self, domain_id: str, record_id: str) -> None:
        name, record_type = parse_synthetic_id(record_id)
        try:
            self._request("DELETE", f"/v1/domains/{domain_id}/records/{record_type}/{name}")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise RecordNotFoundError(self.meta.name, record_id, exc.details) from exc
            raise
        logger.info("Deleted record %s from GoDaddy domain %s", record_id, domain_id)

    def _map_domain(self, item: dict[str, Any]) -> ProviderDomain:
        created = item.get("createdAt")
        status = item.get("status") or ""
        return ProviderDomain(
            id=item["domain"],
            name=item["domain"],
            status=_DOMAIN_STATUS.get(status.upper(), "error"),
            name_servers=tuple(item.get("nameServers") or ()),
            created_at=datetime.fromisoformat(created) if created else None,
            extra={"domain_id": item.get("domainId"), "original_status": status},
        )

    def _map_record(self, item: dict[str, Any], domain_name: str) -> ProviderRecord:
        return ProviderRecord(
            id=synthetic_id(item["name"], item["type"]),
            type=item["type"],
            name=absolute_name(item["name"], domain_name),
            content=item["data"],
            ttl=int(item.get("ttl") or _DEFAULT_TTL),
            priority=item.get("priority"),
            extra={"original_name": item["name"]},
        )
