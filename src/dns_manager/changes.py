"""Change detection between the local record mirror and a provider's live records."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from dns_manager.models import ChangeType, ProviderRecord, Record, RecordChange, RecordValue

# Routing lines are not compared: some vendors relabel them without any content change.
COMPARABLE_FIELDS = ("content", "ttl", "priority", "proxied")


def snapshot(record: Record | ProviderRecord) -> RecordValue:
    """Comparable value of a local or remote record; a missing proxied flag counts as False."""
    return RecordValue(
        content=record.content,
        ttl=record.ttl,
        priority=record.priority,
        proxied=bool(record.proxied),
    )


def changed_fields(previous: RecordValue, current: RecordValue) -> tuple[str, ...]:
    return tuple(name for name in COMPARABLE_FIELDS if getattr(previous, name) != getattr(current, name))


def diff_records(local: Sequence[Record], remote: Sequence[ProviderRecord]) -> list[RecordChange]:
    """Classify how ``remote`` differs from the ``local`` mirror of one domain.

    Records are matched on remote id only, so a record renamed in place at the
    provider is ``modified``, never deleted and re-added. The result lists all
    additions (remote order), then modifications (remote order), then
    deletions (local order). Duplicate ids are reported once, first one wins.
    """
    local_by_id: dict[str, Record] = {}
    for record in local:
        local_by_id.setdefault(record.remote_id, record)
    remote_by_id: dict[str, ProviderRecord] = {}
    for record in remote:
        remote_by_id.setdefault(record.id, record)

    added: list[RecordChange] = []
    modified: list[RecordChange] = []
    for remote_id, current in remote_by_id.items():
        existing = local_by_id.get(remote_id)
        current_value = snapshot(current)
        if existing is None:
            added.append(
                RecordChange(
                    change_type=ChangeType.ADDED,
                    remote_id=remote_id,
                    record_type=current.type,
                    record_name=current.name,
                    current_value=current_value,
                    remote_record=current,
                )
            )
            continue
        previous_value = snapshot(existing)
        fields = changed_fields(previous_value, current_value)
        if fields:
            modified.append(
                RecordChange(
                    change_type=ChangeType.MODIFIED,
                    remote_id=remote_id,
                    record_type=current.type,
                    record_name=current.name,
                    previous_value=previous_value,
                    current_value=current_value,
                    changed_fields=fields,
                    local_record_id=existing.id,
                    remote_record=current,
                )
            )

    deleted = [
        RecordChange(
            change_type=ChangeType.DELETED,
            remote_id=remote_id,
            record_type=existing.type,
            record_name=existing.name,
            previous_value=snapshot(existing),
            local_record_id=existing.id,
        )
        for remote_id, existing in local_by_id.items()
        if remote_id not in remote_by_id
    ]
    return [*added, *modified, *deleted]


def summarize(changes: Sequence[RecordChange]) -> dict[str, int]:
    counts = Counter(change.change_type for change in changes)
    return {str(change_type): counts.get(change_type, 0) for change_type in ChangeType}
