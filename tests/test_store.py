"""Tests for dns_manager.store."""

from datetime import UTC, datetime, timedelta

import pytest

from dns_manager.errors import StoreLookupError
from dns_manager.models import ChangeRecord, ChangeType, Domain, ProviderAccount, Record, RecordValue


def _record(record_id, remote_id, domain_id="dom-1", **kwargs) -> Record:
    defaults = {"type": "A", "name": "www.example.com", "content": "192.0.2.1", "ttl": 300}
    defaults.update(kwargs)
    return Record(id=record_id, domain_id=domain_id, remote_id=remote_id, **defaults)


def _change(change_id, *, domain_id="dom-1", batch="b1", change_type=ChangeType.ADDED, name="www.example.com",
            record_type="A", created_at=datetime(2025, 1, 1, tzinfo=UTC)) -> ChangeRecord:
    return ChangeRecord(
        id=change_id,
        domain_id=domain_id,
        record_id=None,
        remote_id=f"r-{change_id}",
        change_type=change_type,
        record_type=record_type,
        record_name=name,
        previous_value=None,
        current_value=RecordValue(content="192.0.2.1", ttl=300),
        changed_fields=(),
        sync_batch_id=batch,
        user_id=None,
        created_at=created_at,
    )


def test_unknown_ids_raise_lookup_error(store):
    with pytest.raises(StoreLookupError, match="Unknown account: 'nope'"):
        store.get_account("nope")
    with pytest.raises(StoreLookupError, match="Unknown domain"):
        store.get_domain("nope")
    with pytest.raises(StoreLookupError, match="Unknown record"):
        store.get_record("nope")


def test_domain_remote_id_unique_per_account(store, domain):
    with pytest.raises(ValueError, match="already has domain with remote id 'zone-1'"):
        store.add_domain(Domain(id="dom-2", account_id=domain.account_id, name="x.com", remote_id="zone-1"))


def test_same_domain_remote_id_allowed_across_accounts(store, domain):
    store.add_account(ProviderAccount(id="acct-2", provider="godaddy", label="Other", credentials="t"))

    store.add_domain(Domain(id="dom-2", account_id="acct-2", name="example.com", remote_id="zone-1"))

    assert len(store.list_domains()) == 2
    assert [d.id for d in store.list_domains("acct-2")] == ["dom-2"]


def test_record_remote_id_unique_per_domain(store, domain):
    store.insert_record(_record("L1", "r1"))

    with pytest.raises(ValueError, match="already has record with remote id 'r1'"):
        store.insert_record(_record("L2", "r1"))


def test_replace_record_overwrites_every_field(store, domain):
    store.insert_record(_record("L1", "r1", line="default"))

    store.replace_record(_record("L1", "r2", content="192.0.2.9", line=None))

    record = store.get_record("L1")
    assert record.remote_id == "r2"
    assert record.content == "192.0.2.9"
    assert record.line is None


def test_delete_records_ignores_missing_ids(store, domain):
    store.insert_record(_record("L1", "r1"))
    store.insert_record(_record("L2", "r2"))

    removed = store.delete_records("dom-1", ["r1", "missing"])

    assert removed == 1
    assert [r.id for r in store.list_records("dom-1")] == ["L2"]


def test_mark_synced_sets_timestamp(store, domain):
    now = datetime(2025, 6, 1, tzinfo=UTC)

    store.mark_synced("dom-1", now)

    assert store.get_domain("dom-1").synced_at == now


def test_remove_account_cascades(store, domain):
    store.insert_record(_record("L1", "r1"))
    store.add_changes([_change("c1")])

    store.remove_account("acct-1")

    assert store.list_domains() == []
    assert store.list_changes() == []
    with pytest.raises(StoreLookupError):
        store.get_record("L1")


def test_list_changes_filters(store, domain):
    base = datetime(2025, 1, 1, tzinfo=UTC)
    store.add_changes(
        [
            _change("c1", batch="b1", name="www.example.com", created_at=base),
            _change("c2", batch="b1", change_type=ChangeType.DELETED, name="mail.example.com", record_type="MX",
                    created_at=base + timedelta(days=1)),
            _change("c3", batch="b2", change_type=ChangeType.MODIFIED, created_at=base + timedelta(days=2)),
        ]
    )

    assert [c.id for c in store.list_changes(sync_batch_id="b1")] == ["c1", "c2"]
    assert [c.id for c in store.list_changes(change_type=ChangeType.MODIFIED)] == ["c3"]
    assert [c.id for c in store.list_changes(since=base + timedelta(days=1))] == ["c2", "c3"]
    assert [c.id for c in store.list_changes(search="MAIL")] == ["c2"]
    assert [c.id for c in store.list_changes(search="mx")] == ["c2"]


def test_list_changes_naive_since_is_utc(store, domain):
    store.add_changes(
        [
            _change("c1", created_at=datetime(2025, 1, 1, tzinfo=UTC)),
            _change("c2", created_at=datetime(2025, 1, 3, tzinfo=UTC)),
        ]
    )

    assert [c.id for c in store.list_changes(since=datetime(2025, 1, 2))] == ["c2"]
    assert store.change_stats("dom-1", since=datetime(2025, 1, 2))["total"] == 1


def test_change_stats(store, domain):
    store.add_changes(
        [
            _change("c1"),
            _change("c2"),
            _change("c3", change_type=ChangeType.DELETED),
        ]
    )

    assert store.change_stats("dom-1") == {"added": 2, "modified": 0, "deleted": 1, "total": 3}
    assert store.change_stats("other")["total"] == 0
