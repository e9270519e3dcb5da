"""Namecheap DNS provider: XML API with credentials passed as query parameters.

Namecheap only offers a whole-zone ``setHosts`` write, so every mutation is a
read-modify-write of the complete host list. Writes to one zone must never be
issued concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

import httpx

from dns_manager.errors import AuthenticationError, DomainNotFoundError, RecordNotFoundError
from dns_manager.models import CreateRecordInput, ProviderDomain, ProviderRecord, UpdateRecordInput
from dns_manager.providers.base import (
    DEFAULT_TIMEOUT,
    CredentialField,
    DnsProvider,
    ProviderCapabilities,
    ProviderMeta,
)
from dns_manager.providers.util import absolute_name, merge_value, relative_name, split_domain
from dns_manager.xmlutil import as_list, parse_xml

logger = logging.getLogger(__name__)

_ENDPOINT = "https://api.namecheap.com/xml.response"
_DEFAULT_TTL = 1800
_DOMAINS_PAGE_SIZE = 100
_AUTH_CODES = frozenset({"1011002", "1011004", "1011102", "1011150"})
_DOMAIN_NOT_FOUND_CODES = frozenset({"2019166", "2016166"})


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%m/%d/%Y")
    except ValueError:
        return None


class NamecheapProvider(DnsProvider):
    """DNS provider backed by Namecheap's registrar DNS."""

    meta = ProviderMeta(
        name="namecheap",
        display_name="Namecheap",
        description="Namecheap registrar DNS",
        website="https://www.namecheap.com",
        capabilities=ProviderCapabilities(batch_writes=True),
        credential_fields=(
            CredentialField("apiUser", "API User", secret=False),
            CredentialField("apiKey", "API Key"),
            CredentialField("userName", "Username", secret=False),
            CredentialField(
                "clientIp", "Client IP", secret=False, help_text="Whitelisted IPv4 address"
            ),
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
        self._auth_params = {
            "ApiUser": creds["apiUser"],
            "ApiKey": creds["apiKey"],
            "UserName": creds["userName"],
            "ClientIp": creds["clientIp"],
        }
        self._client = _http_client or httpx.Client(timeout=timeout)

    def _request(
        self, command: str, params: Mapping[str, str] | None = None, *, post: bool = False
    ) -> dict[str, Any]:
        all_params = {**self._auth_params, "Command": command, **(params or {})}
        if post:
            resp = self._send("POST", _ENDPOINT, data=all_params)
        else:
            resp = self._send("GET", _ENDPOINT, params=all_params)

        try:
            response = parse_xml(resp.text).get("ApiResponse")
        except ValueError as exc:
            raise self._error("Invalid XML response", "PARSE_ERROR", {"status": resp.status_code}) from exc
        if not isinstance(response, dict):
            raise self._error("Invalid XML response", "PARSE_ERROR", {"status": resp.status_code})

        if response.get("Status") == "OK":
            return response.get("CommandResponse") or {}

        errors = as_list((response.get("Errors") or {}).get("Error"))
        first = errors[0] if errors else {}
        if isinstance(first, dict):
            message, code = first.get("_") or "Unknown error", first.get("Number") or "UNKNOWN"
        else:
            message, code = first or "Unknown error", "UNKNOWN"
        details = {"code": code, "message": message, "errors": errors}
        if code in _AUTH_CODES:
            raise AuthenticationError(self.meta.name, details)
        domain = (params or {}).get("DomainName") or ".".join(
            part for part in ((params or {}).get("SLD"), (params or {}).get("TLD")) if part
        )
        if code in _DOMAIN_NOT_FOUND_CODES or "Domain not found" in message:
            raise DomainNotFoundError(self.meta.name, domain or "unknown", details)
        raise self._error(message, code, details)

    def _check_credentials(self) -> None:
        self._request("namecheap.domains.getList", {"PageSize": "1"})

    def list_domains(self) -> list[ProviderDomain]:
        domains: list[ProviderDomain] = []
        page = 1
        while True:
            data = self._request(
                "namecheap.domains.getList", {"Page": str(page), "PageSize": str(_DOMAINS_PAGE_SIZE)}
            )
            batch = as_list((data.get("DomainGetListResult") or {}).get("Domain"))
            domains.extend(self._map_domain(item) for item in batch)
            total = int((data.get("Paging") or {}).get("TotalItems") or 0)
            if not batch or len(domains) >= total:
                return domains
            page += 1

    def get_domain(self, domain_id: str) -> ProviderDomain:
        data = self._request("namecheap.domains.getInfo", {"DomainName": domain_id})
        info = data.get("DomainGetInfoResult") or {}
        details = info.get("DomainDetails") or {}
        name_servers = as_list((info.get("DnsDetails") or {}).get("Nameserver"))
        status = (info.get("Status") or "ok").lower()
        return ProviderDomain(
            id=domain_id,
            name=domain_id,
            status="inactive" if status in ("expired", "locked") else "active",
            name_servers=tuple(ns for ns in name_servers if isinstance(ns, str)),
            created_at=_parse_date(details.get("CreatedDate")),
            extra={"expires": details.get("ExpiredDate"), "original_status": info.get("Status")},
        )

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        sld, tld = split_domain(domain_id)
        data = self._request("namecheap.domains.dns.getHosts", {"SLD": sld, "TLD": tld})
        hosts = as_list((data.get("DomainDNSGetHostsResult") or {}).get("host"))
        return [self._map_host(host, domain_id) for host in hosts]

    def _set_hosts(self, domain_id: str, records: Sequence[ProviderRecord]) -> None:
        sld, tld = split_domain(domain_id)
        params = {"SLD": sld, "TLD": tld}
        for index, record in enumerate(records, start=1):
            params[f"HostName{index}"] = relative_name(record.name, domain_id)
            params[f"RecordType{index}"] = record.type
            params[f"Address{index}"] = record.content
            params[f"TTL{index}"] = str(record.ttl)
            if record.type == "MX" and record.priority is not None:
                params[f"MXPref{index}"] = str(record.priority)
        self._request("namecheap.domains.dns.setHosts", params, post=True)

    def _new_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        host = relative_name(data.name, domain_id)
        return ProviderRecord(
            id=_fallback_id(host, data.type, data.content),
            type=data.type,
            name=absolute_name(host, domain_id),
            content=data.content,
            ttl=data.ttl or _DEFAULT_TTL,
            priority=data.priority if data.type == "MX" else None,
        )

    def _resolve_ids(self, domain_id: str, records: Sequence[ProviderRecord]) -> list[ProviderRecord]:
        """Swap placeholder ids for the HostIds Namecheap assigned after a write."""
        current = self.list_records(domain_id)
        resolved = []
        for record in records:
            match = next(
                (
                    host
                    for host in current
                    if (host.type, host.name, host.content) == (record.type, record.name, record.content)
                ),
                record,
            )
            resolved.append(match)
        return resolved

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        return self.batch_create_records(domain_id, [data])[0]

    def batch_create_records(
        self, domain_id: str, inputs: Sequence[CreateRecordInput]
    ) -> list[ProviderRecord]:
        if not inputs:
            return []
        existing = self.list_records(domain_id)
        created = [self._new_record(domain_id, data) for data in inputs]
        self._set_hosts(domain_id, [*existing, *created])
        logger.info("Created %d host record(s) in Namecheap domain %s", len(created), domain_id)
        return self._resolve_ids(domain_id, created)

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        records = self.list_records(domain_id)
        for index, existing in enumerate(records):
            if existing.id == record_id:
                break
        else:
            raise RecordNotFoundError(self.meta.name, record_id)

        updated = ProviderRecord(
            id=existing.id,
            type=merge_value(data.type, existing.type),
            name=absolute_name(relative_name(merge_value(data.name, existing.name), domain_id), domain_id),
            content=merge_value(data.content, existing.content),
            ttl=merge_value(data.ttl, existing.ttl),
            priority=merge_value(data.priority, existing.priority),
            extra=dict(existing.extra),
        )
        records[index] = updated
        self._set_hosts(domain_id, records)
        logger.info("Updated host record %s in Namecheap domain %s", record_id, domain_id)
        return self._resolve_ids(domain_id, [updated])[0]

    def delete_record(self, domain_id: str, record_id: str) -> None:
        records = self.list_records(domain_id)
        remaining = [record for record in records if record.id != record_id]
        if len(remaining) == len(records):
            raise RecordNotFoundError(self.meta.name, record_id)
        self._set_hosts(domain_id, remaining)
        logger.info("Deleted host record %s from Namecheap domain %s", record_id, domain_id)

    def batch_delete_records(self, domain_id: str, record_ids: Sequence[str]) -> None:
        wanted = set(record_ids)
        records = self.list_records(domain_id)
        remaining = [record for record in records if record.id not in wanted]
        if len(remaining) == len(records):
            logger.warning("Namecheap domain %s has none of the requested records; skipping", domain_id)
            return
        self._set_hosts(domain_id, remaining)
        logger.info(
            "Deleted %d host record(s) from Namecheap domain %s", len(records) - len(remaining), domain_id
        )

    def _map_domain(self, item: dict[str, Any]) -> ProviderDomain:
        expired = item.get("IsExpired") == "true"
        return ProviderDomain(
            id=item["Name"],
            name=item["Name"],
            status="inactive" if expired else "active",
            created_at=_parse_date(item.get("Created")),
            extra={
                "namecheap_id": item.get("ID"),
                "expires": item.get("Expires"),
                "is_locked": item.get("IsLocked") == "true",
                "auto_renew": item.get("AutoRenew") == "true",
            },
        )

    def _map_host(self, host: dict[str, Any], domain_name: str) -> ProviderRecord:
        name = host.get("Name") or "@"
        mx_pref = host.get("MXPref")
        return ProviderRecord(
            id=host.get("HostId") or _fallback_id(name, host["Type"], host.get("Address", "")),
            type=host["Type"],
            name=absolute_name(name, domain_name),
            content=host.get("Address", ""),
            ttl=int(host.get("TTL") or _DEFAULT_TTL),
            priority=int(mx_pref) if host["Type"] == "MX" and mx_pref else None,
            extra={"original_name": name},
        )


def _fallback_id(name: str, record_type: str, address: str) -> str:
    return f"{name}-{record_type}-{address}"
