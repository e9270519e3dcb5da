"""Entry points used by the surrounding application: sync, record CRUD, discovery."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence

from dns_manager.config import AppConfig
from dns_manager.crypto import CredentialCipher
from dns_manager.errors import ProviderError, RecordNotFoundError, StoreLookupError, SyncError
from dns_manager.models import (
    ChangeRecord,
    CreateRecordInput,
    DNSLine,
    Domain,
    Record,
    SyncResult,
    UpdateRecordInput,
)
from dns_manager.providers import ProviderRegistry
from dns_manager.store import MirrorStore
from dns_manager.sync import SyncOrchestrator
from dns_manager.validation import validate_create, validate_update

logger = logging.getLogger(__name__)

SyncListener = Callable[[SyncResult, Sequence[ChangeRecord]], None]


def _new_id() -> str:
    return uuid.uuid4().hex


class DnsService:
    """Facade over the mirror store, the provider registry and the sync engine.

    Listeners are called after every successful sync with the result and the
    change history rows that sync persisted (empty when nothing changed).
    """

    def __init__(
        self,
        store: MirrorStore,
        registry: ProviderRegistry,
        cipher: CredentialCipher,
        *,
        listeners: Iterable[SyncListener] = (),
        orchestrator: SyncOrchestrator | None = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self._registry = registry
        self._cipher = cipher
        self._listeners = list(listeners)
        self._orchestrator = orchestrator or SyncOrchestrator(store, registry, cipher)
        self._id_factory = id_factory

    @classmethod
    def from_config(cls, config: AppConfig, store: MirrorStore, **kwargs) -> DnsService:
        return cls(store, ProviderRegistry.default(config), CredentialCipher(config.encryption_key), **kwargs)

    def add_listener(self, listener: SyncListener) -> None:
        self._listeners.append(listener)

    # --- sync ---

    def sync_domain(self, domain_id: str, acting_user_id: str | None = None) -> SyncResult:
        """Sync one domain, reporting failure in the result instead of raising."""
        try:
            result = self._orchestrator.sync(domain_id, acting_user_id)
        except ProviderError as exc:
            logger.warning("Sync of domain %s failed: [%s] %s", domain_id, exc.code, exc.message)
            return SyncResult(domain_id=domain_id, success=False, error=exc.message)
        except SyncError as exc:
            return SyncResult(
                domain_id=domain_id,
                success=False,
                sync_batch_id=exc.sync_batch_id,
                error=str(exc),
            )
        except (StoreLookupError, ValueError) as exc:
            # unknown domain, undecryptable credentials or an unusable provider config
            logger.warning("Sync of domain %s could not start: %s", domain_id, exc)
            return SyncResult(domain_id=domain_id, success=False, error=str(exc))

        changes = self._store.list_changes(sync_batch_id=result.sync_batch_id)
        for listener in self._listeners:
            try:
                listener(result, changes)
            except Exception:
                logger.warning("Sync listener %r failed for domain %s", listener, domain_id, exc_info=True)
        return result

    # --- records ---

    def _accepts_auto_ttl(self, domain: Domain) -> bool:
        account = self._store.get_account(domain.account_id)
        return self._registry.meta(account.provider).capabilities.proxied

    def create_record(self, domain_id: str, data: CreateRecordInput) -> Record:
        domain = self._store.get_domain(domain_id)
        validate_create(data, auto_ttl=self._accepts_auto_ttl(domain))
        with self._orchestrator.open_provider(domain) as provider:
            remote = provider.create_record(domain.remote_id, data)

        # Route53 and GoDaddy key record sets by name and type, so a create can
        # land on a set that is already mirrored
        mirrored = next(
            (row for row in self._store.list_records(domain_id) if row.remote_id == remote.id), None
        )
        if mirrored is not None:
            record = self._store.replace_record(
                Record.from_remote(remote, record_id=mirrored.id, domain_id=domain_id, synced_at=mirrored.synced_at)
            )
            logger.info("Created %s record %s in %s, replacing mirrored set", record.type, record.name, domain.name)
            return record

        record = self._store.insert_record(
            Record.from_remote(remote, record_id=self._id_factory(), domain_id=domain_id)
        )
        logger.info("Created %s record %s in %s", record.type, record.name, domain.name)
        return record

    def update_record(self, domain_id: str, record_id: str, data: UpdateRecordInput) -> Record:
        """Update a record at the provider and overwrite its mirror row with the result.

        The provider may hand back a different remote id (Route53 and GoDaddy
        key records by name and type); the mirror row follows it.
        """
        domain = self._store.get_domain(domain_id)
        existing = self._store.get_record(record_id)
        validate_update(data, current_type=existing.type, auto_ttl=self._accepts_auto_ttl(domain))
        with self._orchestrator.open_provider(domain) as provider:
            remote = provider.update_record(domain.remote_id, existing.remote_id, data)
        record = self._store.replace_record(
            Record.from_remote(remote, record_id=existing.id, domain_id=domain_id, synced_at=existing.synced_at)
        )
        logger.info("Updated %s record %s in %s", record.type, record.name, domain.name)
        return record

    def delete_record(self, domain_id: str, record_id: str) -> None:
        domain = self._store.get_domain(domain_id)
        existing = self._store.get_record(record_id)
        with self._orchestrator.open_provider(domain) as provider:
            try:
                provider.delete_record(domain.remote_id, existing.remote_id)
            except RecordNotFoundError:
                logger.warning("Record %s was already deleted at the provider", existing.remote_id)
        self._store.delete_record(existing.id)
        logger.info("Deleted %s record %s from %s", existing.type, existing.name, domain.name)

    def list_lines(self, domain_id: str) -> list[DNSLine]:
        domain = self._store.get_domain(domain_id)
        with self._orchestrator.open_provider(domain) as provider:
            return provider.list_lines(domain.remote_id)

    # --- accounts ---

    def validate_credentials(self, provider_name: str, credentials: Mapping[str, str]) -> bool:
        """Check plaintext credentials before they are encrypted and stored."""
        with self._registry.create(provider_name, credentials) as provider:
            return provider.validate_credentials()

    def import_domains(self, account_id: str) -> list[Domain]:
        """Add every zone of the account not mirrored yet. Returns the newly added domains."""
        account = self._store.get_account(account_id)
        with self._registry.create(account.provider, self._cipher.decrypt(account.credentials)) as provider:
            zones = provider.list_domains()

        known = {domain.remote_id for domain in self._store.list_domains(account_id)}
        added = []
        for zone in zones:
            if zone.id in known:
                continue
            known.add(zone.id)
            added.append(
                self._store.add_domain(
                    Domain(
                        id=self._id_factory(),
                        account_id=account_id,
                        name=zone.name,
                        remote_id=zone.id,
                        status=zone.status,
                    )
                )
            )
        logger.info("Imported %d new domain(s) for account %s", len(added), account_id)
        return added
