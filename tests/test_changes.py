"""Tests for dns_manager.changes."""

from dns_manager.changes import diff_records, snapshot, summarize
from dns_manager.models import ChangeType, ProviderRecord, Record


def _local(record_id, remote_id, content="1.1.1.1", **kwargs) -> Record:
    defaults = {"type": "A", "name": "www.example.com", "ttl": 300}
    defaults.update(kwargs)
    return Record(id=record_id, domain_id="dom-1", remote_id=remote_id, content=content, **defaults)


def _remote(remote_id, content="1.1.1.1", **kwargs) -> ProviderRecord:
    defaults = {"type": "A", "name": "www.example.com", "ttl": 300}
    defaults.update(kwargs)
    return ProviderRecord(id=remote_id, content=content, **defaults)


def test_empty_mirror_reports_every_remote_record_as_added():
    remote = [_remote("r1"), _remote("r2", "2.2.2.2", name="api.example.com")]

    changes = diff_records([], remote)

    assert [c.change_type for c in changes] == [ChangeType.ADDED, ChangeType.ADDED]
    assert [c.remote_id for c in changes] == ["r1", "r2"]
    assert changes[0].previous_value is None
    assert changes[1].current_value.content == "2.2.2.2"
    assert changes[0].remote_record is remote[0]


def test_content_change_is_modified_with_changed_fields():
    changes = diff_records([_local("L1", "r1", "1.1.1.1")], [_remote("r1", "1.1.1.2")])

    assert len(changes) == 1
    change = changes[0]
    assert change.change_type is ChangeType.MODIFIED
    assert change.changed_fields == ("content",)
    assert change.previous_value.content == "1.1.1.1"
    assert change.current_value.content == "1.1.1.2"
    assert change.local_record_id == "L1"


def test_missing_remote_record_is_deleted():
    changes = diff_records([_local("L1", "r1")], [])

    assert len(changes) == 1
    assert changes[0].change_type is ChangeType.DELETED
    assert changes[0].local_record_id == "L1"
    assert changes[0].current_value is None
    assert changes[0].previous_value.content == "1.1.1.1"


def test_missing_proxied_equals_false():
    changes = diff_records([_local("L1", "r1", proxied=False)], [_remote("r1", proxied=None)])

    assert changes == []


def test_line_change_alone_is_not_a_modification():
    changes = diff_records([_local("L1", "r1", line="default")], [_remote("r1", line="telecom")])

    assert changes == []


def test_rename_in_place_is_modified_not_readded():
    local = [_local("L1", "r1", "1.1.1.1", name="old.example.com")]
    remote = [_remote("r1", "9.9.9.9", name="new.example.com")]

    changes = diff_records(local, remote)

    assert [c.change_type for c in changes] == [ChangeType.MODIFIED]
    assert changes[0].record_name == "new.example.com"


def test_ordering_added_then_modified_then_deleted():
    local = [_local("L1", "gone"), _local("L2", "keep", "1.1.1.1")]
    remote = [_remote("keep", "5.5.5.5"), _remote("new")]

    changes = diff_records(local, remote)

    assert [(c.change_type, c.remote_id) for c in changes] == [
        (ChangeType.ADDED, "new"),
        (ChangeType.MODIFIED, "keep"),
        (ChangeType.DELETED, "gone"),
    ]


def test_multiple_fields_reported_in_fixed_order():
    local = [_local("L1", "r1", "a", ttl=300, priority=10, type="MX")]
    remote = [_remote("r1", "b", ttl=600, priority=20, proxied=True, type="MX")]

    (change,) = diff_records(local, remote)

    assert change.changed_fields == ("content", "ttl", "priority", "proxied")


def test_duplicate_remote_ids_reported_once():
    changes = diff_records([], [_remote("r1", "1.1.1.1"), _remote("r1", "2.2.2.2")])

    assert len(changes) == 1
    assert changes[0].current_value.content == "1.1.1.1"


def test_diff_is_reflexive():
    remote = [_remote("r1"), _remote("r2", "2.2.2.2", ttl=1, proxied=True)]
    local = [
        Record.from_remote(record, record_id=f"L{i}", domain_id="dom-1")
        for i, record in enumerate(remote)
    ]

    assert diff_records(local, remote) == []


def test_snapshot_normalises_proxied():
    assert snapshot(_remote("r1", proxied=None)).proxied is False
    assert snapshot(_local("L1", "r1", proxied=True)).proxied is True


def test_summarize_counts_each_type():
    local = [_local("L1", "gone"), _local("L2", "keep")]
    remote = [_remote("keep", "5.5.5.5"), _remote("new1"), _remote("new2")]

    assert summarize(diff_records(local, remote)) == {"added": 2, "modified": 1, "deleted": 1}
