"""Domain sync: reconcile the local record mirror with a provider's live records."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime

from dns_manager.changes import diff_records, summarize
from dns_manager.crypto import CredentialCipher
from dns_manager.errors import SyncError
from dns_manager.models import ChangeRecord, ChangeType, Domain, Record, RecordChange, SyncResult
from dns_manager.providers import ProviderRegistry
from dns_manager.providers.base import DnsProvider
from dns_manager.store import MirrorStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class SyncOrchestrator:
    """Runs one domain's sync cycle against the mirror store.

    Concurrent syncs of the same domain are not safe against each other; the
    caller must serialize them.
    """

    def __init__(
        self,
        store: MirrorStore,
        registry: ProviderRegistry,
        cipher: CredentialCipher,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self._registry = registry
        self._cipher = cipher
        self._clock = clock
        self._id_factory = id_factory

    @contextmanager
    def open_provider(self, domain: Domain) -> Iterator[DnsProvider]:
        """Decrypt the owning account's credentials and yield a ready adapter, closed on exit."""
        account = self._store.get_account(domain.account_id)
        provider = self._registry.create(account.provider, self._cipher.decrypt(account.credentials))
        with provider:
            yield provider

    def sync(self, domain_id: str, acting_user_id: str | None = None) -> SyncResult:
        """Fetch the provider's records, record every difference, then bring the mirror in line.

        Provider failures abort before anything is written and propagate
        unchanged. Once history is being written, any failure is raised as
        ``SyncError`` and already-applied mutations stay in place; the next run
        re-detects whatever is still out of date.
        """
        domain = self._store.get_domain(domain_id)
        with self.open_provider(domain) as provider:
            remote = provider.list_records(domain.remote_id)
        local = self._store.list_records(domain_id)
        changes = diff_records(local, remote)

        sync_batch_id = self._id_factory()
        now = self._clock()
        try:
            new_ids = {
                change.remote_id: self._id_factory()
                for change in changes
                if change.change_type is ChangeType.ADDED
            }
            self._store.add_changes(
                self._history(domain_id, changes, new_ids, sync_batch_id, acting_user_id, now)
            )
            self._apply(domain_id, changes, new_ids, now)
            self._store.mark_synced(domain_id, now)
        except Exception as exc:
            logger.exception("Sync of domain %s failed after change detection (batch %s)", domain_id, sync_batch_id)
            raise SyncError(domain_id, sync_batch_id, f"Failed to apply changes for domain {domain_id}: {exc}") from exc

        counts = summarize(changes)
        logger.info(
            "Synced domain %s: %d records, %d added, %d modified, %d deleted",
            domain.name,
            len(remote),
            counts["added"],
            counts["modified"],
            counts["deleted"],
        )
        return SyncResult(
            domain_id=domain_id,
            success=True,
            sync_batch_id=sync_batch_id,
            records_count=len(remote),
            added=counts["added"],
            modified=counts["modified"],
            deleted=counts["deleted"],
        )

    def _history(
        self,
        domain_id: str,
        changes: Sequence[RecordChange],
        new_ids: dict[str, str],
        sync_batch_id: str,
        acting_user_id: str | None,
        now: datetime,
    ) -> list[ChangeRecord]:
        rows = []
        for change in changes:
            if change.change_type is ChangeType.ADDED:
                record_id = new_ids[change.remote_id]
            elif change.change_type is ChangeType.MODIFIED:
                record_id = change.local_record_id
            else:
                # the mirror row is about to disappear
                record_id = None
            rows.append(
                ChangeRecord(
                    id=self._id_factory(),
                    domain_id=domain_id,
                    record_id=record_id,
                    remote_id=change.remote_id,
                    change_type=change.change_type,
                    record_type=change.record_type,
                    record_name=change.record_name,
                    previous_value=change.previous_value,
                    current_value=change.current_value,
                    changed_fields=change.changed_fields,
                    sync_batch_id=sync_batch_id,
                    user_id=acting_user_id,
                    created_at=now,
                )
            )
        return rows

    def _apply(
        self,
        domain_id: str,
        changes: Sequence[RecordChange],
        new_ids: dict[str, str],
        now: datetime,
    ) -> None:
        deleted = [c.remote_id for c in changes if c.change_type is ChangeType.DELETED]
        if deleted:
            self._store.delete_records(domain_id, deleted)

        for change in changes:
            if change.change_type is ChangeType.ADDED:
                self._store.insert_record(
                    Record.from_remote(
                        change.remote_record,
                        record_id=new_ids[change.remote_id],
                        domain_id=domain_id,
                        synced_at=now,
                    )
                )

        for change in changes:
            if change.change_type is ChangeType.MODIFIED:
                self._store.replace_record(
                    Record.from_remote(
                        change.remote_record,
                        record_id=change.local_record_id,
                        domain_id=domain_id,
                        synced_at=now,
                    )
                )
