"""Cloudflare DNS provider: zones and records via the Cloudflare v4 REST API."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
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
from dns_manager.providers.util import merge_value, resolve_ttl

logger = logging.getLogger(__name__)

_API_BASE = "https://api.cloudflare.com/client/v4"
_ZONES_PER_PAGE = 50
_RECORDS_PER_PAGE = 100
# "Invalid object identifier", "Invalid zone identifier", "Record does not exist"
_NOT_FOUND_CODES = frozenset({"1003", "7003", "81044"})

_ZONE_STATUS = {
    "active": "active",
    "pending": "pending",
    "initializing": "pending",
    "moved": "inactive",
    "deactivated": "inactive",
}


class CloudflareProvider(DnsProvider):
    """DNS provider backed by the Cloudflare API."""

    meta = ProviderMeta(
        name="cloudflare",
        display_name="Cloudflare",
        description="Cloudflare DNS with proxy and CDN features",
        website="https://cloudflare.com",
        capabilities=ProviderCapabilities(proxied=True, parallel_writes=True),
        credential_fields=(
            CredentialField(
                "apiToken",
                "API Token",
                help_text="API token with Zone:Read and DNS:Edit permissions",
            ),
        ),
    )

    def __init__(
        self,
        credentials: Mapping[str, str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_parallel_writes: int = 4,
        _http_client: httpx.Client | None = None,
    ) -> None:
        creds = self._require_credentials(credentials)
        self._max_parallel_writes = max(1, max_parallel_writes)
        self._client = _http_client or httpx.Client(
            headers={"Authorization": f"Bearer {creds['apiToken']}"},
            timeout=timeout,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        resp = self._send(method, f"{_API_BASE}{path}", params=params, json=json)
        body = self._json(resp)
        if not body.get("success"):
            errors = body.get("errors") or []
            first = errors[0] if errors else {}
            raise self._error(
                first.get("message") or f"HTTP {resp.status_code}",
                str(first.get("code", "UNKNOWN")),
                {"status": resp.status_code, "errors": errors},
            )
        return body

    @staticmethod
    def _is_not_found(exc: ProviderError) -> bool:
        return exc.code in _NOT_FOUND_CODES or exc.details.get("status") == 404

    def _paginate(self, path: str, per_page: int) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            body = self._request("GET", path, params={"page": page, "per_page": per_page})
            items.extend(body.get("result") or [])
            total_pages = (body.get("result_info") or {}).get("total_pages") or 1
            if page >= total_pages:
                return items
            page += 1

    def _check_credentials(self) -> None:
        # /zones works for both user and account tokens
        self._request("GET", "/zones", params={"per_page": 1})

    def list_domains(self) -> list[ProviderDomain]:
        return [self._map_zone(zone) for zone in self._paginate("/zones", _ZONES_PER_PAGE)]

    def get_domain(self, domain_id: str) -> ProviderDomain:
        try:
            body = self._request("GET", f"/zones/{domain_id}")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise DomainNotFoundError(self.meta.name, domain_id, exc.details) from exc
            raise
        return self._map_zone(body["result"])

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        try:
            records = self._paginate(f"/zones/{domain_id}/dns_records", _RECORDS_PER_PAGE)
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise DomainNotFoundError(self.meta.name, domain_id, exc.details) from exc
            raise
        return [self._map_record(record) for record in records]

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        proxied = bool(data.proxied)
        payload: dict[str, Any] = {
            "type": data.type,
            "name": data.name,
            "content": data.content,
            "ttl": resolve_ttl(data.ttl, proxied),
            "proxied": proxied,
        }
        if data.priority is not None:
            payload["priority"] = data.priority
        body = self._request("POST", f"/zones/{domain_id}/dns_records", json=payload)
        record = self._map_record(body["result"])
        logger.info("Created %s record %s in Cloudflare zone %s", record.type, record.name, domain_id)
        return record

    def _get_raw_record(self, domain_id: str, record_id: str) -> dict[str, Any]:
        try:
            return self._request("GET", f"/zones/{domain_id}/dns_records/{record_id}")["result"]
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise RecordNotFoundError(self.meta.name, record_id, exc.details) from exc
            raise

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        existing = self._get_raw_record(domain_id, record_id)
        proxied = bool(merge_value(data.proxied, existing.get("proxied")))
        ttl = resolve_ttl(merge_value(data.ttl, existing.get("ttl")), proxied)
        payload: dict[str, Any] = {
            "type": merge_value(data.type, existing["type"]),
            "name": merge_value(data.name, existing["name"]),
            "content": merge_value(data.content, existing["content"]),
            "ttl": ttl,
            "proxied": proxied,
        }
        priority = merge_value(data.priority, existing.get("priority"))
        if priority is not None:
            payload["priority"] = priority
        body = self._request("PUT", f"/zones/{domain_id}/dns_records/{record_id}", json=payload)
        logger.info("Updated record %s in Cloudflare zone %s", record_id, domain_id)
        return self._map_record(body["result"])

    def delete_record(self, domain_id: str, record_id: str) -> None:
        try:
            self._request("DELETE", f"/zones/{domain_id}/dns_records/{record_id}")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise RecordNotFoundError(self.meta.name, record_id, exc.details) from exc
            raise
        logger.info("Deleted record %s from Cloudflare zone %s", record_id, domain_id)

    def batch_create_records(
        self, domain_id: str, inputs: Sequence[CreateRecordInput]
    ) -> list[ProviderRecord]:
        with ThreadPoolExecutor(max_workers=self._max_parallel_writes) as pool:
            return list(pool.map(lambda data: self.create_record(domain_id, data), inputs))

    def batch_delete_records(self, domain_id: str, record_ids: Sequence[str]) -> None:
        with ThreadPoolExecutor(max_workers=self._max_parallel_writes) as pool:
            list(pool.map(lambda record_id: self.delete_record(domain_id, record_id), record_ids))

    def _map_zone(self, zone: dict[str, Any]) -> ProviderDomain:
        created = zone.get("created_on")
        return ProviderDomain(
            id=zone["id"],
            name=zone["name"],
            status=_ZONE_STATUS.get(zone.get("status", ""), "error"),
            name_servers=tuple(zone.get("name_servers") or ()),
            created_at=datetime.fromisoformat(created) if created else None,
            extra={"original_status": zone.get("status")},
        )

    def _map_record(self, record: dict[str, Any]) -> ProviderRecord:
        return ProviderRecord(
            id=record["id"],
            type=record["type"],
            name=record["name"],
            content=record["content"],
            ttl=record["ttl"],
            priority=record.get("priority"),
            proxied=record.get("proxied"),
            extra={
                "created_on": record.get("created_on"),
                "modified_on": record.get("modified_on"),
            },
        )
