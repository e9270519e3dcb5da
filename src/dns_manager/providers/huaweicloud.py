"""Huawei Cloud DNS provider: REST/JSON API signed with the SDK-HMAC-SHA256 scheme."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

from dns_manager.errors import DomainNotFoundError, ProviderError, RecordNotFoundError
from dns_manager.models import (
    CreateRecordInput,
    DNSLine,
    ProviderDomain,
    ProviderRecord,
    UpdateRecordInput,
)
from dns_manager.providers.base import (
    DEFAULT_TIMEOUT,
    CredentialField,
    DnsProvider,
    ProviderCapabilities,
    ProviderMeta,
)
from dns_manager.providers.util import (
    absolute_name,
    join_priority,
    merge_value,
    split_priority,
    with_trailing_dot,
    without_trailing_dot,
)
from dns_manager.signing import sigv4

logger = logging.getLogger(__name__)

_HOST = "dns.myhuaweicloud.com"
_ENDPOINT = f"https://{_HOST}"
_DEFAULT_REGION = "cn-north-1"
_DEFAULT_TTL = 300
_DEFAULT_LINE = "default_view"
_PAGE_SIZE = 500
_HIDDEN_TYPES = frozenset({"NS", "SOA"})

_LINES = (
    DNSLine("default_view", "默认"),
    DNSLine("Dianxin", "电信"),
    DNSLine("Liantong", "联通"),
    DNSLine("Yidong", "移动"),
    DNSLine("Jiaoyuwang", "教育网"),
    DNSLine("Tietong", "铁通"),
)

_ZONE_STATUS = {
    "ACTIVE": "active",
    "PENDING": "pending",
    "PENDING_CREATE": "pending",
    "DELETED": "error",
    "ERROR": "error",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class HuaweiCloudProvider(DnsProvider):
    """DNS provider backed by Huawei Cloud DNS public zones."""

    meta = ProviderMeta(
        name="huaweicloud",
        display_name="Huawei Cloud DNS",
        description="Huawei Cloud DNS with ISP resolution lines",
        website="https://console.huaweicloud.com/dns",
        capabilities=ProviderCapabilities(geo_routing=True),
        credential_fields=(
            CredentialField("accessKeyId", "Access Key ID", secret=False),
            CredentialField("secretAccessKey", "Secret Access Key"),
            CredentialField("region", "Region", secret=False, required=False, help_text="Defaults to cn-north-1"),
        ),
    )

    def __init__(
        self,
        credentials: Mapping[str, str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        default_region: str = _DEFAULT_REGION,
        _http_client: httpx.Client | None = None,
        _clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        creds = self._require_credentials(credentials)
        self._access_key_id = creds["accessKeyId"]
        self._secret_access_key = creds["secretAccessKey"]
        self._region = creds.get("region") or default_region
        self._clock = _clock
        self._client = _http_client or httpx.Client(timeout=timeout)

    @property
    def region(self) -> str:
        return self._region

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body = json.dumps(payload, separators=(",", ":")).encode() if payload is not None else b""
        headers = sigv4.sign_huawei(
            method=method,
            path=path,
            access_key_id=self._access_key_id,
            secret_access_key=self._secret_access_key,
            moment=self._clock(),
            query=query,
            body=body,
            region=self._region,
        )
        url = f"{_ENDPOINT}{path}"
        if query:
            url = f"{url}?{sigv4.canonical_query_string(query)}"
        resp = self._send(method, url, headers=headers, content=body or None)

        if resp.is_success:
            if resp.status_code == 204 or not resp.content:
                return {}
            return self._json(resp)

        try:
            error = resp.json()
        except ValueError:
            error = {"message": resp.text}
        code = error.get("code") or error.get("error_code") or str(resp.status_code)
        message = error.get("message") or error.get("error_msg") or f"HTTP {resp.status_code}"
        raise self._error(message, code, {"status": resp.status_code, "response": error})

    @staticmethod
    def _is_not_found(exc: ProviderError) -> bool:
        return exc.details.get("status") == 404

    def _paginate(self, path: str, key: str, query: Mapping[str, str] | None = None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while True:
            data = self._request(
                "GET", path, query={**(query or {}), "limit": str(_PAGE_SIZE), "offset": str(len(items))}
            )
            batch = data.get(key) or []
            items.extend(batch)
            total = (data.get("metadata") or {}).get("total_count", 0)
            if not batch or len(items) >= total:
                return items

    def _check_credentials(self) -> None:
        self._request("GET", "/v2/zones", query={"limit": "1"})

    def list_domains(self) -> list[ProviderDomain]:
        zones = self._paginate("/v2/zones", "zones", {"type": "public"})
        return [self._map_zone(zone) for zone in zones]

    def get_domain(self, domain_id: str) -> ProviderDomain:
        try:
            zone = self._request("GET", f"/v2/zones/{domain_id}")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise DomainNotFoundError(self.meta.name, domain_id, exc.details) from exc
            raise
        return self._map_zone(zone)

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        try:
            recordsets = self._paginate(f"/v2.1/zones/{domain_id}/recordsets", "recordsets")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise DomainNotFoundError(self.meta.name, domain_id, exc.details) from exc
            raise
        return [self._map_record(rs) for rs in recordsets if rs.get("type") not in _HIDDEN_TYPES]

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        zone = self.get_domain(domain_id)
        payload = {
            "name": with_trailing_dot(absolute_name(data.name, zone.name)),
            "type": data.type,
            "ttl": data.ttl or _DEFAULT_TTL,
            "records": [join_priority(data.priority if data.type == "MX" else None, data.content)],
            "line": data.line_id or data.line or _DEFAULT_LINE,
        }
        recordset = self._request("POST", f"/v2.1/zones/{domain_id}/recordsets", payload=payload)
        logger.info("Created %s record %s in Huawei Cloud zone %s", data.type, payload["name"], domain_id)
        return self._map_record(recordset)

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        path = f"/v2.1/zones/{domain_id}/recordsets/{record_id}"
        try:
            existing = self._map_record(self._request("GET", path))
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise RecordNotFoundError(self.meta.name, record_id, exc.details) from exc
            raise

        record_type = merge_value(data.type, existing.type)
        priority = merge_value(data.priority, existing.priority)
        content = merge_value(data.content, existing.content)
        if data.content is None and data.priority is None and data.type is None:
            records = list(existing.extra.get("records") or [content])
        else:
            records = [join_priority(priority if record_type == "MX" else None, content)]
        name = existing.name
        if data.name is not None:
            name = absolute_name(data.name, self.get_domain(domain_id).name)
        payload = {
            "name": with_trailing_dot(name),
            "type": record_type,
            "ttl": merge_value(data.ttl, existing.ttl),
            "records": records,
            "line": data.line_id or data.line or existing.line or _DEFAULT_LINE,
        }
        recordset = self._request("PUT", path, payload=payload)
        logger.info("Updated record %s in Huawei Cloud zone %s", record_id, domain_id)
        return self._map_record(recordset)

    def delete_record(self, domain_id: str, record_id: str) -> None:
        try:
            self._request("DELETE", f"/v2.1/zones/{domain_id}/recordsets/{record_id}")
        except ProviderError as exc:
            if self._is_not_found(exc):
                raise RecordNotFoundError(self.meta.name, record_id, exc.details) from exc
            raise
        logger.info("Deleted record %s from Huawei Cloud zone %s", record_id, domain_id)

    def list_lines(self, domain_id: str) -> list[DNSLine]:
        return list(_LINES)

    def _map_zone(self, zone: dict[str, Any]) -> ProviderDomain:
        created = zone.get("created_at")
        status = zone.get("status") or ""
        return ProviderDomain(
            id=zone["id"],
            name=without_trailing_dot(zone["name"]),
            status=_ZONE_STATUS.get(status.upper(), "inactive"),
            name_servers=tuple(zone.get("masters") or ()),
            created_at=datetime.fromisoformat(created) if created else None,
            extra={
                "zone_type": zone.get("zone_type"),
                "record_num": zone.get("record_num"),
                "original_status": status,
            },
        )

    def _map_record(self, recordset: dict[str, Any]) -> ProviderRecord:
        records = list(recordset.get("records") or [])
        content = records[0] if records else ""
        priority = None
        if recordset["type"] == "MX":
            priority, content = split_priority(content)
        line = recordset.get("line")
        return ProviderRecord(
            id=recordset["id"],
            type=recordset["type"],
            name=without_trailing_dot(recordset["name"]),
            content=content,
            ttl=int(recordset.get("ttl") or _DEFAULT_TTL),
            priority=priority,
            line=line,
            line_id=line,
            extra={
                "records": records,
                "status": recordset.get("status"),
                "weight": recordset.get("weight"),
            },
        )
