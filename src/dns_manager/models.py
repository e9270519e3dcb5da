"""Data classes shared by the provider adapters, the mirror store and the sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

RECORD_TYPES = ("A", "AAAA", "CNAME", "MX", "TXT", "NS", "SRV", "CAA", "PTR")
DOMAIN_STATUSES = ("active", "pending", "error", "inactive")


class ChangeType(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


# --- provider-side shapes ---


@dataclass(frozen=True)
class ProviderDomain:
    """A zone as reported by a provider."""

    id: str
    name: str
    status: str
    name_servers: tuple[str, ...] = ()
    created_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderRecord:
    """A DNS record as reported by a provider. ``name`` is fully qualified."""

    id: str
    type: str
    name: str
    content: str
    ttl: int
    priority: int | None = None
    proxied: bool | None = None
    line: str | None = None
    line_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DNSLine:
    """A smart-resolution routing line (ISP / region label)."""

    id: str
    name: str
    parent_id: str | None = None


@dataclass(frozen=True)
class CreateRecordInput:
    type: str
    name: str
    content: str
    ttl: int | None = None
    priority: int | None = None
    proxied: bool | None = None
    line: str | None = None
    line_id: str | None = None


@dataclass(frozen=True)
class UpdateRecordInput:
    """Partial update; ``None`` means "keep the current remote value"."""

    type: str | None = None
    name: str | None = None
    content: str | None = None
    ttl: int | None = None
    priority: int | None = None
    proxied: bool | None = None
    line: str | None = None
    line_id: str | None = None


# --- local mirror ---


@dataclass(frozen=True)
class ProviderAccount:
    """A configured provider account. ``credentials`` is the encrypted token."""

    id: str
    provider: str
    label: str
    credentials: str


@dataclass(frozen=True)
class Domain:
    id: str
    account_id: str
    name: str
    remote_id: str
    status: str = "active"
    synced_at: datetime | None = None


@dataclass(frozen=True)
class Record:
    """Local mirror row of a provider record."""

    id: str
    domain_id: str
    remote_id: str
    type: str
    name: str
    content: str
    ttl: int
    priority: int | None = None
    proxied: bool | None = None
    line: str | None = None
    line_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    synced_at: datetime | None = None

    @classmethod
    def from_remote(
        cls,
        remote: ProviderRecord,
        *,
        record_id: str,
        domain_id: str,
        synced_at: datetime | None = None,
    ) -> Record:
        """Build a mirror row whose every field is taken from ``remote``."""
        return cls(
            id=record_id,
            domain_id=domain_id,
            remote_id=remote.id,
            type=remote.type,
            name=remote.name,
            content=remote.content,
            ttl=remote.ttl,
            priority=remote.priority,
            proxied=remote.proxied if remote.proxied is not None else False,
            line=remote.line,
            line_id=remote.line_id,
            extra=dict(remote.extra),
            synced_at=synced_at,
        )


# --- change detection / history ---


@dataclass(frozen=True)
class RecordValue:
    """Comparable snapshot of a record: the fields change detection looks at."""

    content: str
    ttl: int
    priority: int | None = None
    proxied: bool = False

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "ttl": self.ttl,
            "priority": self.priority,
            "proxied": self.proxied,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RecordValue:
        return cls(
            content=data["content"],
            ttl=data["ttl"],
            priority=data.get("priority"),
            proxied=bool(data.get("proxied", False)),
        )


@dataclass(frozen=True)
class RecordChange:
    """One difference between the local mirror and the provider."""

    change_type: ChangeType
    remote_id: str
    record_type: str
    record_name: str
    previous_value: RecordValue | None = None
    current_value: RecordValue | None = None
    changed_fields: tuple[str, ...] = ()
    local_record_id: str | None = None
    remote_record: ProviderRecord | None = None


@dataclass(frozen=True)
class ChangeRecord:
    """Immutable audit entry for a change observed during a sync."""

    id: str
    domain_id: str
    record_id: str | None
    remote_id: str
    change_type: ChangeType
    record_type: str
    record_name: str
    previous_value: RecordValue | None
    current_value: RecordValue | None
    changed_fields: tuple[str, ...]
    sync_batch_id: str
    user_id: str | None
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "domain_id": self.domain_id,
            "record_id": self.record_id,
            "remote_id": self.remote_id,
            "change_type": str(self.change_type),
            "record_type": self.record_type,
            "record_name": self.record_name,
            "previous_value": self.previous_value.to_dict() if self.previous_value else None,
            "current_value": self.current_value.to_dict() if self.current_value else None,
            "changed_fields": list(self.changed_fields),
            "sync_batch_id": self.sync_batch_id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ChangeRecord:
        previous = data.get("previous_value")
        current = data.get("current_value")
        return cls(
            id=data["id"],
            domain_id=data["domain_id"],
            record_id=data.get("record_id"),
            remote_id=data["remote_id"],
            change_type=ChangeType(data["change_type"]),
            record_type=data["record_type"],
            record_name=data["record_name"],
            previous_value=RecordValue.from_dict(previous) if previous else None,
            current_value=RecordValue.from_dict(current) if current else None,
            changed_fields=tuple(data.get("changed_fields", ())),
            sync_batch_id=data["sync_batch_id"],
            user_id=data.get("user_id"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one domain sync."""

    domain_id: str
    success: bool
    sync_batch_id: str | None = None
    records_count: int = 0
    added: int = 0
    modified: int = 0
    deleted: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "domain_id": self.domain_id,
            "success": self.success,
            "sync_batch_id": self.sync_batch_id,
            "records_count": self.records_count,
            "added": self.added,
            "modified": self.modified,
            "deleted": self.deleted,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SyncResult:
        return cls(
            domain_id=data["domain_id"],
            success=data["success"],
            sync_batch_id=data.get("sync_batch_id"),
            records_count=data.get("records_count", 0),
            added=data.get("added", 0),
            modified=data.get("modified", 0),
            deleted=data.get("deleted", 0),
            error=data.get("error"),
        )
