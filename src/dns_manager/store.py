"""Local mirror persistence as seen by the sync engine."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from dns_manager.errors import StoreLookupError
from dns_manager.models import ChangeRecord, ChangeType, Domain, ProviderAccount, Record

logger = logging.getLogger(__name__)


class MirrorStore(ABC):
    """Accounts, domains, mirrored records and change history.

    Invariants every implementation keeps: a domain's ``remote_id`` is unique
    per account and a record's ``remote_id`` is unique per domain. Lookups of
    unknown local ids raise ``StoreLookupError``.
    """

    @abstractmethod
    def add_account(self, account: ProviderAccount) -> ProviderAccount: ...

    @abstractmethod
    def get_account(self, account_id: str) -> ProviderAccount: ...

    @abstractmethod
    def remove_account(self, account_id: str) -> None:
        """Remove an account together with its domains, records and change history."""

    @abstractmethod
    def add_domain(self, domain: Domain) -> Domain: ...

    @abstractmethod
    def get_domain(self, domain_id: str) -> Domain: ...

    @abstractmethod
    def list_domains(self, account_id: str | None = None) -> list[Domain]: ...

    @abstractmethod
    def mark_synced(self, domain_id: str, synced_at: datetime) -> Domain: ...

    @abstractmethod
    def list_records(self, domain_id: str) -> list[Record]: ...

    @abstractmethod
    def get_record(self, record_id: str) -> Record: ...

    @abstractmethod
    def insert_record(self, record: Record) -> Record: ...

    @abstractmethod
    def replace_record(self, record: Record) -> Record:
        """Overwrite every field of the row with ``record.id``."""

    @abstractmethod
    def delete_records(self, domain_id: str, remote_ids: Iterable[str]) -> int:
        """Delete rows of ``domain_id`` by remote id; missing ids are ignored. Returns the count removed."""

    @abstractmethod
    def delete_record(self, record_id: str) -> None: ...

    @abstractmethod
    def add_changes(self, changes: Sequence[ChangeRecord]) -> None: ...

    @abstractmethod
    def list_changes(
        self,
        domain_id: str | None = None,
        sync_batch_id: str | None = None,
        change_type: ChangeType | None = None,
        since: datetime | None = None,
        search: str | None = None,
    ) -> list[ChangeRecord]:
        """Change history in insertion order.

        ``since`` keeps entries created at or after that moment (naive values
        are taken as UTC); ``search`` is a case-insensitive substring match on
        record name or type.
        """

    def change_stats(self, domain_id: str | None = None, since: datetime | None = None) -> dict[str, int]:
        changes = self.list_changes(domain_id=domain_id, since=since)
        counts = Counter(change.change_type for change in changes)
        stats = {str(change_type): counts.get(change_type, 0) for change_type in ChangeType}
        stats["total"] = sum(counts.values())
        return stats


class InMemoryStore(MirrorStore):
    """Thread-safe, process-local ``MirrorStore``."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: dict[str, ProviderAccount] = {}
        self._domains: dict[str, Domain] = {}
        self._records: dict[str, Record] = {}
        self._changes: list[ChangeRecord] = []

    # --- accounts ---

    def add_account(self, account: ProviderAccount) -> ProviderAccount:
        with self._lock:
            if account.id in self._accounts:
                raise ValueError(f"Account '{account.id}' already exists")
            self._accounts[account.id] = account
            return account

    def get_account(self, account_id: str) -> ProviderAccount:
        with self._lock:
            try:
                return self._accounts[account_id]
            except KeyError:
                raise StoreLookupError(f"Unknown account: '{account_id}'") from None

    def remove_account(self, account_id: str) -> None:
        with self._lock:
            self.get_account(account_id)
            domain_ids = {d.id for d in self._domains.values() if d.account_id == account_id}
            self._records = {k: r for k, r in self._records.items() if r.domain_id not in domain_ids}
            self._changes = [c for c in self._changes if c.domain_id not in domain_ids]
            for domain_id in domain_ids:
                del self._domains[domain_id]
            del self._accounts[account_id]
        logger.info("Removed account %s with %d domain(s)", account_id, len(domain_ids))

    # --- domains ---

    def add_domain(self, domain: Domain) -> Domain:
        with self._lock:
            self.get_account(domain.account_id)
            if domain.id in self._domains:
                raise ValueError(f"Domain '{domain.id}' already exists")
            for existing in self._domains.values():
                if existing.account_id == domain.account_id and existing.remote_id == domain.remote_id:
                    raise ValueError(
                        f"Account '{domain.account_id}' already has domain with remote id '{domain.remote_id}'"
                    )
            self._domains[domain.id] = domain
            return domain

    def get_domain(self, domain_id: str) -> Domain:
        with self._lock:
            try:
                return self._domains[domain_id]
            except KeyError:
                raise StoreLookupError(f"Unknown domain: '{domain_id}'") from None

    def list_domains(self, account_id: str | None = None) -> list[Domain]:
        with self._lock:
            return [d for d in self._domains.values() if account_id is None or d.account_id == account_id]

    def mark_synced(self, domain_id: str, synced_at: datetime) -> Domain:
        with self._lock:
            domain = replace(self.get_domain(domain_id), synced_at=synced_at)
            self._domains[domain_id] = domain
            return domain

    # --- records ---

    def list_records(self, domain_id: str) -> list[Record]:
        with self._lock:
            self.get_domain(domain_id)
            return [r for r in self._records.values() if r.domain_id == domain_id]

    def get_record(self, record_id: str) -> Record:
        with self._lock:
            try:
                return self._records[record_id]
            except KeyError:
                raise StoreLookupError(f"Unknown record: '{record_id}'") from None

    def _check_unique_remote_id(self, record: Record) -> None:
        for existing in self._records.values():
            if (
                existing.id != record.id
                and existing.domain_id == record.domain_id
                and existing.remote_id == record.remote_id
            ):
                raise ValueError(
                    f"Domain '{record.domain_id}' already has record with remote id '{record.remote_id}'"
                )

    def insert_record(self, record: Record) -> Record:
        with self._lock:
            self.get_domain(record.domain_id)
            if record.id in self._records:
                raise ValueError(f"Record '{record.id}' already exists")
            self._check_unique_remote_id(record)
            self._records[record.id] = record
            return record

    def replace_record(self, record: Record) -> Record:
        with self._lock:
            self.get_record(record.id)
            self._check_unique_remote_id(record)
            self._records[record.id] = record
            return record

    def delete_records(self, domain_id: str, remote_ids: Iterable[str]) -> int:
        wanted = set(remote_ids)
        with self._lock:
            doomed = [
                record_id
                for record_id, record in self._records.items()
                if record.domain_id == domain_id and record.remote_id in wanted
            ]
            for record_id in doomed:
                del self._records[record_id]
            return len(doomed)

    def delete_record(self, record_id: str) -> None:
        with self._lock:
            self.get_record(record_id)
            del self._records[record_id]

    # --- change history ---

    def add_changes(self, changes: Sequence[ChangeRecord]) -> None:
        with self._lock:
            self._changes.extend(changes)

    def list_changes(
        self,
        domain_id: str | None = None,
        sync_batch_id: str | None = None,
        change_type: ChangeType | None = None,
        since: datetime | None = None,
        search: str | None = None,
    ) -> list[ChangeRecord]:
        needle = search.lower() if search else None
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=UTC)
        with self._lock:
            return [
                c
                for c in self._changes
                if (domain_id is None or c.domain_id == domain_id)
                and (sync_batch_id is None or c.sync_batch_id == sync_batch_id)
                and (change_type is None or c.change_type == change_type)
                and (since is None or c.created_at >= since)
                and (needle is None or needle in c.record_name.lower() or needle in c.record_type.lower())
            ]
