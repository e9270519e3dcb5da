"""Tests for dns_manager.models."""

from datetime import UTC, datetime


def test_record_from_remote_copies_every_field():
    from dns_manager.models import ProviderRecord, Record

    remote = ProviderRecord(
        id="r1",
        type="MX",
        name="example.com",
        content="mail.example.com",
        ttl=600,
        priority=10,
        line="default",
        line_id="0",
        extra={"weight": 5},
    )
    now = datetime(2025, 1, 1, tzinfo=UTC)

    record = Record.from_remote(remote, record_id="local-1", domain_id="dom-1", synced_at=now)

    assert record.id == "local-1"
    assert record.domain_id == "dom-1"
    assert record.remote_id == "r1"
    assert record.priority == 10
    assert record.proxied is False
    assert record.line == "default"
    assert record.extra == {"weight": 5}
    assert record.synced_at == now


def test_change_record_to_dict_roundtrip():
    from dns_manager.models import ChangeRecord, ChangeType, RecordValue

    change = ChangeRecord(
        id="c1",
        domain_id="dom-1",
        record_id="local-1",
        remote_id="r1",
        change_type=ChangeType.MODIFIED,
        record_type="A",
        record_name="www.example.com",
        previous_value=RecordValue(content="1.1.1.1", ttl=300),
        current_value=RecordValue(content="2.2.2.2", ttl=300),
        changed_fields=("content",),
        sync_batch_id="batch-1",
        user_id=None,
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )
    d = change.to_dict()
    assert d["change_type"] == "modified"
    assert d["previous_value"] == {"content": "1.1.1.1", "ttl": 300, "priority": None, "proxied": False}
    assert d["changed_fields"] == ["content"]
    assert d["created_at"] == "2025-01-01T00:00:00+00:00"

    assert ChangeRecord.from_dict(d) == change


def test_change_record_added_has_no_previous_value():
    from dns_manager.models import ChangeRecord, ChangeType, RecordValue

    change = ChangeRecord(
        id="c1",
        domain_id="dom-1",
        record_id="local-1",
        remote_id="r1",
        change_type=ChangeType.ADDED,
        record_type="TXT",
        record_name="example.com",
        previous_value=None,
        current_value=RecordValue(content="v=spf1", ttl=1),
        changed_fields=(),
        sync_batch_id="batch-1",
        user_id="user-9",
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )
    d = change.to_dict()
    assert d["previous_value"] is None
    assert ChangeRecord.from_dict(d).user_id == "user-9"


def test_sync_result_to_dict_roundtrip():
    from dns_manager.models import SyncResult

    result = SyncResult(domain_id="dom-1", success=False, error="Authentication failed")
    d = result.to_dict()
    assert d["success"] is False
    assert d["records_count"] == 0
    assert SyncResult.from_dict(d) == result


def test_change_type_is_string_valued():
    from dns_manager.models import ChangeType

    assert ChangeType("deleted") is ChangeType.DELETED
    assert str(ChangeType.ADDED) == "added"
