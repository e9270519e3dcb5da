"""Tencent Cloud DNSPod provider: API 3.0 signed with TC3-HMAC-SHA256."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

from dns_manager.errors import (
    AuthenticationError,
    DomainNotFoundError,
    ProviderError,
    RateLimitError,
    RecordNotFoundError,
)
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
from dns_manager.providers.util import absolute_name, merge_value, relative_name
from dns_manager.signing import tc3

logger = logging.getLogger(__name__)

_HOST = "dnspod.tencentcloudapi.com"
_SERVICE = "dnspod"
_VERSION = "2021-03-23"
_DEFAULT_TTL = 600
_DEFAULT_LINE = "默认"
_DOMAINS_PAGE_SIZE = 100
_RECORDS_PAGE_SIZE = 3000

_AUTH_CODES = frozenset(
    {"AuthFailure.SecretIdNotFound", "AuthFailure.SignatureFailure", "AuthFailure.InvalidSecretId"}
)
_EMPTY_RESULT_CODES = frozenset({"ResourceNotFound.NoDataOfRecord", "ResourceNotFound.NoDataOfDomain"})

_DOMAIN_STATUS = {"ENABLE": "active", "PAUSE": "inactive", "SPAM": "error"}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DnsPodProvider(DnsProvider):
    """DNS provider backed by Tencent Cloud DNSPod."""

    meta = ProviderMeta(
        name="dnspod",
        display_name="DNSPod",
        description="Tencent Cloud DNSPod with smart resolution lines",
        website="https://console.dnspod.cn",
        capabilities=ProviderCapabilities(geo_routing=True),
        credential_fields=(
            CredentialField("secretId", "SecretId", secret=False),
            CredentialField("secretKey", "SecretKey"),
        ),
    )

    def __init__(
        self,
        credentials: Mapping[str, str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        _http_client: httpx.Client | None = None,
        _clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        creds = self._require_credentials(credentials)
        self._secret_id = creds["secretId"]
        self._secret_key = creds["secretKey"]
        self._clock = _clock
        self._client = _http_client or httpx.Client(timeout=timeout)

    def _request(self, action: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        params = dict(params or {})
        payload = json.dumps(params, separators=(",", ":"))
        headers = tc3.sign_request(
            secret_id=self._secret_id,
            secret_key=self._secret_key,
            action=action,
            payload=payload,
            timestamp=int(self._clock().timestamp()),
            host=_HOST,
            service=_SERVICE,
            version=_VERSION,
        )
        resp = self._send("POST", f"https://{_HOST}/", headers=headers, content=payload.encode())
        data = self._json(resp).get("Response") or {}

        error = data.get("Error")
        if not error:
            return data
        code = error.get("Code", "UNKNOWN")
        details = {"code": code, "message": error.get("Message"), "request_id": data.get("RequestId")}
        if code in _AUTH_CODES:
            raise AuthenticationError(self.meta.name, details)
        if code == "RequestLimitExceeded" or code.startswith("RequestLimitExceeded."):
            raise RateLimitError(self.meta.name, details=details)
        if code == "InvalidParameter.DomainNotExist":
            raise DomainNotFoundError(self.meta.name, str(params.get("Domain", "unknown")), details)
        if code == "InvalidParameter.RecordIdInvalid":
            raise RecordNotFoundError(self.meta.name, str(params.get("RecordId", "unknown")), details)
        raise self._error(error.get("Message") or "Unknown error", code, details)

    def _check_credentials(self) -> None:
        try:
            self._request("DescribeDomainList", {"Offset": 0, "Limit": 1})
        except ProviderError as exc:
            if exc.code not in _EMPTY_RESULT_CODES:
                raise

    def list_domains(self) -> list[ProviderDomain]:
        domains: list[ProviderDomain] = []
        offset = 0
        while True:
            try:
                data = self._request("DescribeDomainList", {"Offset": offset, "Limit": _DOMAINS_PAGE_SIZE})
            except ProviderError as exc:
                if exc.code in _EMPTY_RESULT_CODES:
                    return domains
                raise
            batch = data.get("DomainList") or []
            domains.extend(self._map_domain(item) for item in batch)
            offset += len(batch)
            total = (data.get("DomainCountInfo") or {}).get("AllTotal", 0)
            if not batch or offset >= total:
                return domains

    def get_domain(self, domain_id: str) -> ProviderDomain:
        for domain in self.list_domains():
            if domain.id == domain_id or domain.name == domain_id:
                return domain
        raise DomainNotFoundError(self.meta.name, domain_id)

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        domain = self.get_domain(domain_id)
        records: list[ProviderRecord] = []
        offset = 0
        while True:
            try:
                data = self._request(
                    "DescribeRecordList",
                    {"Domain": domain.name, "Offset": offset, "Limit": _RECORDS_PAGE_SIZE},
                )
            except ProviderError as exc:
                if exc.code == "ResourceNotFound.NoDataOfRecord":
                    return records
                raise
            batch = data.get("RecordList") or []
            records.extend(self._map_record(item, domain.name) for item in batch)
            offset += len(batch)
            total = (data.get("RecordCountInfo") or {}).get("TotalCount", 0)
            if not batch or offset >= total:
                return records

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        domain = self.get_domain(domain_id)
        sub_domain = relative_name(data.name, domain.name)
        ttl = data.ttl or _DEFAULT_TTL
        line = data.line or _DEFAULT_LINE
        params: dict[str, Any] = {
            "Domain": domain.name,
            "SubDomain": sub_domain,
            "RecordType": data.type,
            "Value": data.content,
            "RecordLine": line,
            "TTL": ttl,
        }
        if data.line_id:
            params["RecordLineId"] = data.line_id
        if data.priority is not None and data.type == "MX":
            params["MX"] = data.priority

        result = self._request("CreateRecord", params)
        logger.info("Created %s record %s in DNSPod domain %s", data.type, sub_domain, domain.name)
        return ProviderRecord(
            id=str(result["RecordId"]),
            type=data.type,
            name=absolute_name(sub_domain, domain.name),
            content=data.content,
            ttl=ttl,
            priority=data.priority if data.type == "MX" else None,
            line=line,
            line_id=data.line_id,
        )

    def _describe_record(self, domain_name: str, record_id: str) -> dict[str, Any]:
        data = self._request("DescribeRecord", {"Domain": domain_name, "RecordId": int(record_id)})
        info = data.get("RecordInfo")
        if not info:
            raise RecordNotFoundError(self.meta.name, record_id)
        return info

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        domain = self.get_domain(domain_id)
        existing = self._describe_record(domain.name, record_id)

        sub_domain = relative_name(merge_value(data.name, existing["SubDomain"]), domain.name)
        record_type = merge_value(data.type, existing["RecordType"])
        content = merge_value(data.content, existing["Value"])
        ttl = merge_value(data.ttl, existing["TTL"])
        priority = merge_value(data.priority, existing.get("MX"))
        line = merge_value(data.line, existing.get("RecordLine")) or _DEFAULT_LINE
        line_id = merge_value(data.line_id, existing.get("RecordLineId"))
        params: dict[str, Any] = {
            "Domain": domain.name,
            "RecordId": int(record_id),
            "SubDomain": sub_domain,
            "RecordType": record_type,
            "Value": content,
            "RecordLine": line,
            "TTL": ttl,
        }
        if line_id:
            params["RecordLineId"] = line_id
        if priority is not None and record_type == "MX":
            params["MX"] = priority

        self._request("ModifyRecord", params)
        logger.info("Updated record %s in DNSPod domain %s", record_id, domain.name)
        return ProviderRecord(
            id=record_id,
            type=record_type,
            name=absolute_name(sub_domain, domain.name),
            content=content,
            ttl=ttl,
            priority=priority if record_type == "MX" else None,
            line=line,
            line_id=line_id,
        )

    def delete_record(self, domain_id: str, record_id: str) -> None:
        domain = self.get_domain(domain_id)
        self._request("DeleteRecord", {"Domain": domain.name, "RecordId": int(record_id)})
        logger.info("Deleted record %s from DNSPod domain %s", record_id, domain.name)

    def list_lines(self, domain_id: str) -> list[DNSLine]:
        domain = self.get_domain(domain_id)
        data = self._request(
            "DescribeRecordLineList",
            {"Domain": domain.name, "DomainGrade": domain.extra.get("grade") or "DP_FREE"},
        )
        lines = [DNSLine(id=str(item["LineId"]), name=item["Name"]) for item in data.get("LineList") or []]
        for group in data.get("LineGroupList") or []:
            lines.append(DNSLine(id=str(group["LineId"]), name=group["Name"], parent_id=group.get("Type")))
        return lines

    def _map_domain(self, item: dict[str, Any]) -> ProviderDomain:
        created = item.get("CreatedOn")
        return ProviderDomain(
            id=str(item["DomainId"]),
            name=item["Name"],
            status=_DOMAIN_STATUS.get(item.get("Status", ""), "pending"),
            name_servers=tuple(item.get("EffectiveDNS") or ()),
            created_at=datetime.fromisoformat(created) if created else None,
            extra={"grade": item.get("Grade"), "dns_status": item.get("DNSStatus")},
        )

    def _map_record(self, item: dict[str, Any], domain_name: str) -> ProviderRecord:
        record_type = item["Type"]
        return ProviderRecord(
            id=str(item["RecordId"]),
            type=record_type,
            name=absolute_name(item["Name"], domain_name),
            content=item["Value"],
            ttl=int(item["TTL"]),
            priority=item.get("MX") if record_type == "MX" else None,
            line=item.get("Line"),
            line_id=item.get("LineId"),
            extra={"status": item.get("Status"), "updated_on": item.get("UpdatedOn")},
        )
