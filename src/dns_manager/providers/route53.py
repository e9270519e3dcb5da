"""AWS Route53 provider: REST/XML API signed with SigV4."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import httpx

from dns_manager.errors import DomainNotFoundError, RateLimitError, RecordNotFoundError
from dns_manager.models import CreateRecordInput, ProviderDomain, ProviderRecord, UpdateRecordInput
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
from dns_manager.xmlutil import as_list, parse_xml

logger = logging.getLogger(__name__)

_HOST = "route53.amazonaws.com"
_ENDPOINT = f"https://{_HOST}"
_API = "/2013-04-01"
_XMLNS = "https://route53.amazonaws.com/doc/2013-04-01/"
_DEFAULT_TTL = 300
_ZONES_PAGE_SIZE = 100
_RECORDS_PAGE_SIZE = 300
_HIDDEN_TYPES = frozenset({"NS", "SOA"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def rrset_id(name: str, record_type: str) -> str:
    """Route53 has no record ids; a record set is keyed by its absolute name and type."""
    return f"{with_trailing_dot(name)}-{record_type}"


class Route53Provider(DnsProvider):
    """DNS provider backed by AWS Route53 hosted zones."""

    meta = ProviderMeta(
        name="route53",
        display_name="AWS Route53",
        description="Amazon Route53 hosted zones",
        website="https://aws.amazon.com/route53/",
        capabilities=ProviderCapabilities(batch_writes=True, parallel_writes=True),
        credential_fields=(
            CredentialField("accessKeyId", "Access Key ID", secret=False),
            CredentialField("secretAccessKey", "Secret Access Key"),
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
        self._access_key_id = creds["accessKeyId"]
        self._secret_access_key = creds["secretAccessKey"]
        self._clock = _clock
        self._client = _http_client or httpx.Client(timeout=timeout)

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str] | None = None,
        body: bytes = b"",
        domain_id: str | None = None,
    ) -> dict[str, Any]:
        headers = sigv4.sign_aws(
            method=method,
            path=path,
            access_key_id=self._access_key_id,
            secret_access_key=self._secret_access_key,
            moment=self._clock(),
            query=query,
            body=body,
        )
        if body:
            headers["Content-Type"] = "text/xml"
        url = f"{_ENDPOINT}{path}"
        if query:
            url = f"{url}?{sigv4.canonical_query_string(query)}"
        resp = self._send(method, url, headers=headers, content=body or None)

        if resp.status_code == 503:
            raise RateLimitError(self.meta.name, details={"status": 503})
        try:
            data = parse_xml(resp.text) if resp.text.strip() else {}
        except ValueError as exc:
            raise self._error(
                f"Invalid XML response (HTTP {resp.status_code})",
                "INVALID_RESPONSE",
                {"status": resp.status_code},
            ) from exc
        if resp.is_success:
            return next(iter(data.values()), None) or {}

        error = (data.get("ErrorResponse") or {}).get("Error") or {}
        code = error.get("Code") or str(resp.status_code)
        details = {"status": resp.status_code, "code": code, "message": error.get("Message")}
        if code in ("Throttling", "ThrottlingException", "PriorRequestNotComplete"):
            raise RateLimitError(self.meta.name, details=details)
        if domain_id is not None and (code == "NoSuchHostedZone" or resp.status_code == 404):
            raise DomainNotFoundError(self.meta.name, domain_id, details)
        raise self._error(error.get("Message") or f"HTTP {resp.status_code}", code, details)

    def _check_credentials(self) -> None:
        self._request("GET", f"{_API}/hostedzone", query={"maxitems": "1"})

    def list_domains(self) -> list[ProviderDomain]:
        domains: list[ProviderDomain] = []
        query = {"maxitems": str(_ZONES_PAGE_SIZE)}
        while True:
            data = self._request("GET", f"{_API}/hostedzone", query=query)
            zones = as_list((data.get("HostedZones") or {}).get("HostedZone"))
            domains.extend(self._map_zone(zone) for zone in zones)
            if data.get("IsTruncated") != "true" or not data.get("NextMarker"):
                return domains
            query = {"maxitems": str(_ZONES_PAGE_SIZE), "marker": data["NextMarker"]}

    def get_domain(self, domain_id: str) -> ProviderDomain:
        data = self._request("GET", f"{_API}/hostedzone/{domain_id}", domain_id=domain_id)
        name_servers = as_list(((data.get("DelegationSet") or {}).get("NameServers") or {}).get("NameServer"))
        return self._map_zone(data["HostedZone"], tuple(name_servers))

    def _list_record_sets(self, domain_id: str) -> list[dict[str, Any]]:
        record_sets: list[dict[str, Any]] = []
        query = {"maxitems": str(_RECORDS_PAGE_SIZE)}
        while True:
            data = self._request(
                "GET", f"{_API}/hostedzone/{domain_id}/rrset", query=query, domain_id=domain_id
            )
            record_sets.extend(as_list((data.get("ResourceRecordSets") or {}).get("ResourceRecordSet")))
            if data.get("IsTruncated") != "true":
                return record_sets
            query = {
                "maxitems": str(_RECORDS_PAGE_SIZE),
                "name": data["NextRecordName"],
                "type": data["NextRecordType"],
            }

    def list_records(self, domain_id: str) -> list[ProviderRecord]:
        return [
            self._map_record(rrset)
            for rrset in self._list_record_sets(domain_id)
            if rrset["Type"] not in _HIDDEN_TYPES
        ]

    def _find_record(self, domain_id: str, remote_id: str) -> ProviderRecord:
        for record in self.list_records(domain_id):
            if record.id == remote_id:
                return record
        raise RecordNotFoundError(self.meta.name, remote_id)

    def create_record(self, domain_id: str, data: CreateRecordInput) -> ProviderRecord:
        return self.batch_create_records(domain_id, [data])[0]

    def batch_create_records(
        self, domain_id: str, inputs: Sequence[CreateRecordInput]
    ) -> list[ProviderRecord]:
        if not inputs:
            return []
        zone = self.get_domain(domain_id).name
        records = [
            ProviderRecord(
                id=rrset_id(absolute_name(data.name, zone), data.type),
                type=data.type,
                name=absolute_name(data.name, zone),
                content=data.content,
                ttl=data.ttl or _DEFAULT_TTL,
                priority=data.priority,
            )
            for data in inputs
        ]
        self._change(domain_id, [("CREATE", record) for record in records])
        logger.info("Created %d record set(s) in Route53 zone %s", len(records), domain_id)
        return records

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> ProviderRecord:
        existing = self._find_record(domain_id, record_id)
        name = without_trailing_dot(merge_value(data.name, existing.name))
        record_type = merge_value(data.type, existing.type)
        extra = dict(existing.extra)
        if data.content is not None or data.priority is not None or data.type is not None:
            extra.pop("values", None)
        if data.content is not None:
            extra.pop("alias_target", None)
        updated = ProviderRecord(
            id=rrset_id(name, record_type),
            type=record_type,
            name=name,
            content=merge_value(data.content, existing.content),
            ttl=merge_value(data.ttl, existing.ttl),
            priority=merge_value(data.priority, existing.priority),
            extra=extra,
        )
        if updated.id == existing.id:
            changes = [("UPSERT", updated)]
        else:
            # name or type changed: the old set must go in the same batch
            changes = [("DELETE", existing), ("CREATE", updated)]
        self._change(domain_id, changes)
        logger.info("Updated record set %s in Route53 zone %s", record_id, domain_id)
        return updated

    def delete_record(self, domain_id: str, record_id: str) -> None:
        existing = self._find_record(domain_id, record_id)
        self._change(domain_id, [("DELETE", existing)])
        logger.info("Deleted record set %s from Route53 zone %s", record_id, domain_id)

    def batch_delete_records(self, domain_id: str, record_ids: Sequence[str]) -> None:
        wanted = set(record_ids)
        targets = [record for record in self.list_records(domain_id) if record.id in wanted]
        missing = wanted - {record.id for record in targets}
        if missing:
            logger.warning("Route53 zone %s has no record sets %s; skipping", domain_id, sorted(missing))
        if targets:
            self._change(domain_id, [("DELETE", record) for record in targets])
            logger.info("Deleted %d record set(s) from Route53 zone %s", len(targets), domain_id)

    def _change(self, domain_id: str, changes: Sequence[tuple[str, ProviderRecord]]) -> None:
        self._request(
            "POST",
            f"{_API}/hostedzone/{domain_id}/rrset/",
            body=build_change_batch(changes),
            domain_id=domain_id,
        )

    def _map_zone(self, zone: dict[str, Any], name_servers: tuple[str, ...] = ()) -> ProviderDomain:
        config = zone.get("Config") or {}
        private = config.get("PrivateZone") == "true"
        return ProviderDomain(
            id=zone["Id"].removeprefix("/hostedzone/"),
            name=without_trailing_dot(zone["Name"]),
            status="inactive" if private else "active",
            name_servers=name_servers,
            extra={
                "comment": config.get("Comment"),
                "private_zone": private,
                "record_count": zone.get("ResourceRecordSetCount"),
            },
        )

    def _map_record(self, rrset: dict[str, Any]) -> ProviderRecord:
        name = rrset["Name"].replace("\\052", "*")
        values = [item.get("Value") or "" for item in as_list((rrset.get("ResourceRecords") or {}).get("ResourceRecord"))]
        extra: dict[str, Any] = {"values": values}
        for key, label in (("SetIdentifier", "set_identifier"), ("Weight", "weight"), ("Region", "region")):
            if rrset.get(key) is not None:
                extra[label] = rrset[key]
        alias = rrset.get("AliasTarget")
        if alias:
            extra["alias_target"] = alias
            content = without_trailing_dot(alias.get("DNSName") or "")
        else:
            content = values[0] if values else ""

        priority = None
        if rrset["Type"] == "MX" and not alias:
            priority, content = split_priority(content)
        return ProviderRecord(
            id=rrset_id(name, rrset["Type"]),
            type=rrset["Type"],
            name=without_trailing_dot(name),
            content=content,
            ttl=int(rrset.get("TTL") or _DEFAULT_TTL),
            priority=priority,
            extra=extra,
        )


def _record_values(record: ProviderRecord) -> list[str]:
    values = record.extra.get("values")
    if values:
        return list(values)
    if record.type == "MX" and record.priority is not None:
        return [join_priority(record.priority, record.content)]
    return [record.content]


def build_change_batch(changes: Sequence[tuple[str, ProviderRecord]]) -> bytes:
    """Serialize ``(action, record)`` pairs into a ChangeResourceRecordSets request body."""
    root = ET.Element("ChangeResourceRecordSetsRequest", xmlns=_XMLNS)
    change_list = ET.SubElement(ET.SubElement(root, "ChangeBatch"), "Changes")
    for action, record in changes:
        change = ET.SubElement(change_list, "Change")
        ET.SubElement(change, "Action").text = action
        rrset = ET.SubElement(change, "ResourceRecordSet")
        ET.SubElement(rrset, "Name").text = with_trailing_dot(record.name)
        ET.SubElement(rrset, "Type").text = record.type
        for label, key in (("set_identifier", "SetIdentifier"), ("weight", "Weight"), ("region", "Region")):
            if record.extra.get(label) is not None:
                ET.SubElement(rrset, key).text = str(record.extra[label])
        alias = record.extra.get("alias_target")
        if alias:
            target = ET.SubElement(rrset, "AliasTarget")
            ET.SubElement(target, "HostedZoneId").text = alias.get("HostedZoneId")
            ET.SubElement(target, "DNSName").text = alias.get("DNSName")
            ET.SubElement(target, "EvaluateTargetHealth").text = alias.get("EvaluateTargetHealth") or "false"
            continue
        ET.SubElement(rrset, "TTL").text = str(record.ttl)
        resource_records = ET.SubElement(rrset, "ResourceRecords")
        for value in _record_values(record):
            ET.SubElement(ET.SubElement(resource_records, "ResourceRecord"), "Value").text = value
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)
