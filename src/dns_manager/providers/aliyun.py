"""Aliyun (Alibaba Cloud) DNS provider: RPC-style API signed with HMAC-SHA1."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

from dns_manager.errors import (
    AuthenticationError,
    DomainNotFoundError,
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
from dns_manager.signing import aliyun as signing

logger = logging.getLogger(__name__)

_ENDPOINT = "https://alidns.aliyuncs.com/"
_DEFAULT_TTL = 600
_DOMAINS_PAGE_SIZE = 100
_RECORDS_PAGE_SIZE = 500
_AUTH_CODES = frozenset(
    {"InvalidAccessKeyId.NotFound", "InvalidAccessKeyId.Inactive", "SignatureDoesNotMatch"}
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _random_nonce() -> str:
    return uuid.uuid4().hex


class AliyunDnsProvider(DnsProvider):
    """DNS provider backed by Alibaba Cloud DNS (``alidns``).

    Aliyun addresses zones by name in most actions, so ``domain_id`` may be
    either the numeric DomainId or the domain name.
    """

    meta = ProviderMeta(
        name="alidns",
        display_name="Aliyun DNS",
        description="Alibaba Cloud DNS with smart resolution lines",
        website="https://dns.console.aliyun.com",
        capabilities=ProviderCapabilities(geo_routing=True),
        credential_fields=(
            CredentialField("accessKeyId", "AccessKey ID", secret=False),
            CredentialField("accessKeySecret", "AccessKey Secret"),
        ),
    )

    def __init__(
        self,
        credentials: Mapping[str, str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        _http_client: httpx.Client | None = None,
        _clock: Callable[[], datetime] = _utcnow,
        _nonce: Callable[[], str] = _random_nonce,
    ) -> None:
        creds = self._require_credentials(credentials)
        self._access_key_id = creds["accessKeyId"]
        self._access_key_secret = creds["accessKeySecret"]
        self._clock = _clock
        self._nonce = _nonce
        self._client = _http_client or httpx.Client(timeout=timeout)

    def _request(self, action: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        params = {key: str(value) for key, value in (params or {}).items()}
        query = signing.signed_query(
            action,
            params,
            self._access_key_id,
            self._access_key_secret,
            timestamp=self._clock(),
            nonce=self._nonce(),
        )
        resp = self._send("GET", f"{_ENDPOINT}?{query}")
        data = self._json(resp)

        code = data.get("Code")
        if not code:
            return data
        details = {"code": code, "message": data.get("Message"), "request_id": data.get("RequestId")}
        if code in _AUTH_CODES:
            raise AuthenticationError(self.meta.name, details)
        if code.startswith("Throttling"):
            raise RateLimitError(self.meta.name, details=details)
        if code == "DomainNotFound" or code == "InvalidDomainName.NoExist":
            raise DomainNotFoundError(self.meta.name, params.get("DomainName", "unknown"), details)
        if code == "DomainRecordNotBelongToUser":
            raise RecordNotFoundError(self.meta.name, params.get("RecordId", "unknown"), details)
        raise self._error(data.get("Message") or "Unknown error", code, details)

    def _check_credentials(self) -> None:
        self._request("DescribeDomains", {"PageSize": 1})

    def list_domains(self) -> list[ProviderDomain]:
        domains: list[ProviderDomain] = []
        page = 1
        while True:
            data = self._request("DescribeDomains", {"PageNumber": page, "PageSize": _DOMAINS_PAGE_SIZE})
            batch = (data.get("Domains") or {}).get("Domain") or []
            domains.extend(self._map_domain(item) for item in batch)
            if not batch or len(domains) >= int(data.get("TotalCount", 0)):
                return domains
            page += 1

    def get_domain(self, domain_id: str) -> ProviderDomain:
        for domain in self.list_domains():
            if domain.id == domain_id or domain.name == domain_id:
                return domain
        raise DomainNotFoundError(self.meta.name, domain_id)

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        domain = self.get_domain(domain_id)
        records: list[ProviderRecord] = []
        page = 1
        while True:
            data = self._request(
                "DescribeDomainRecords",
                {"DomainName": domain.name, "PageNumber": page, "PageSize": _RECORDS_PAGE_SIZE},
            )
            batch = (data.get("DomainRecords") or {}).get("Record") or []
            records.extend(self._map_record(item, domain.name) for item in batch)
            if not batch or len(records) >= int(data.get("TotalCount", 0)):
                return records
            page += 1

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        domain = self.get_domain(domain_id)
        rr = relative_name(data.name, domain.name)
        ttl = data.ttl or _DEFAULT_TTL
        line = data.line_id or data.line
        params: dict[str, Any] = {
            "DomainName": domain.name,
            "RR": rr,
            "Type": data.type,
            "Value": data.content,
            "TTL": ttl,
        }
        if data.priority is not None:
            params["Priority"] = data.priority
        if line:
            params["Line"] = line

        result = self._request("AddDomainRecord", params)
        logger.info("Created %s record %s in Aliyun domain %s", data.type, rr, domain.name)
        return ProviderRecord(
            id=result["RecordId"],
            type=data.type,
            name=absolute_name(rr, domain.name),
            content=data.content,
            ttl=ttl,
            priority=data.priority,
            line=line,
            line_id=line,
        )

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        domain = self.get_domain(domain_id)
        existing = self._map_record(
            self._request("DescribeDomainRecordInfo", {"RecordId": record_id}), domain.name
        )

        rr = relative_name(merge_value(data.name, existing.name), domain.name)
        record_type = merge_value(data.type, existing.type)
        content = merge_value(data.content, existing.content)
        ttl = merge_value(data.ttl, existing.ttl)
        priority = merge_value(data.priority, existing.priority)
        line = data.line_id or data.line or existing.line_id
        params: dict[str, Any] = {
            "RecordId": record_id,
            "RR": rr,
            "Type": record_type,
            "Value": content,
            "TTL": ttl,
        }
        if priority is not None:
            params["Priority"] = priority
        if line:
            params["Line"] = line

        self._request("UpdateDomainRecord", params)
        logger.info("Updated record %s in Aliyun domain %s", record_id, domain.name)
        return ProviderRecord(
            id=record_id,
            type=record_type,
            name=absolute_name(rr, domain.name),
            content=content,
            ttl=ttl,
            priority=priority,
            line=line,
            line_id=line,
            extra=dict(existing.extra),
        )

    def delete_record(self, domain_id: str, record_id: str) -> None:
        self._request("DeleteDomainRecord", {"RecordId": record_id})
        logger.info("Deleted record %s from Aliyun domain %s", record_id, domain_id)

    def list_lines(self, domain_id: str) -> list[DNSLine]:
        domain = self.get_domain(domain_id)
        data = self._request("DescribeSupportLines", {"DomainName": domain.name})
        lines = (data.get("RecordLines") or {}).get("RecordLine") or []
        return [
            DNSLine(
                id=line["LineCode"],
                name=line.get("LineDisplayName") or line.get("LineName") or line["LineCode"],
                parent_id=line.get("FatherCode") or None,
            )
            for line in lines
        ]

    def _map_domain(self, item: dict[str, Any]) -> ProviderDomain:
        return ProviderDomain(
            id=str(item["DomainId"]),
            name=item["DomainName"],
            status="active",
            name_servers=tuple((item.get("DnsServers") or {}).get("DnsServer") or ()),
            extra={"version_code": item.get("VersionCode")},
        )

    def _map_record(self, item: dict[str, Any], domain_name: str) -> ProviderRecord:
        line = item.get("Line")
        return ProviderRecord(
            id=str(item["RecordId"]),
            type=item["Type"],
            name=absolute_name(item["RR"], domain_name),
            content=item["Value"],
            ttl=int(item["TTL"]),
            priority=item.get("Priority"),
            line=line,
            line_id=line,
            extra={"status": item.get("Status"), "locked": item.get("Locked")},
        )
