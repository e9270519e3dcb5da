"""Pre-flight checks for record input on the direct create/update path."""

from __future__ import annotations

import ipaddress

from dns_manager.errors import RecordValidationError
from dns_manager.models import RECORD_TYPES, CreateRecordInput, UpdateRecordInput

MIN_TTL = 60
MAX_TTL = 86400
MAX_PRIORITY = 65535


def _check_type(record_type: str) -> None:
    if record_type not in RECORD_TYPES:
        raise RecordValidationError(
            f"Unsupported record type '{record_type}', expected one of: {', '.join(RECORD_TYPES)}"
        )


def _check_content(record_type: str, content: str) -> None:
    if not content.strip():
        raise RecordValidationError("Record content must not be empty")
    if record_type == "A":
        try:
            ipaddress.IPv4Address(content)
        except ValueError:
            raise RecordValidationError(f"'{content}' is not a valid IPv4 address") from None
    elif record_type == "AAAA":
        try:
            ipaddress.IPv6Address(content)
        except ValueError:
            raise RecordValidationError(f"'{content}' is not a valid IPv6 address") from None


def _check_ttl(ttl: int | None, auto_ttl: bool) -> None:
    if ttl is None:
        return
    # 1 is the "automatic" sentinel, which only proxying providers resolve
    if ttl == 1:
        if not auto_ttl:
            raise RecordValidationError(
                f"TTL 1 (automatic) is not supported by this provider, use {MIN_TTL} to {MAX_TTL}"
            )
        return
    if not MIN_TTL <= ttl <= MAX_TTL:
        raise RecordValidationError(f"TTL must be 1 (automatic) or between {MIN_TTL} and {MAX_TTL}, got {ttl}")


def _check_priority(priority: int | None) -> None:
    if priority is not None and not 0 <= priority <= MAX_PRIORITY:
        raise RecordValidationError(f"Priority must be between 0 and {MAX_PRIORITY}, got {priority}")


def validate_create(data: CreateRecordInput, *, auto_ttl: bool = True) -> None:
    """Raise ``RecordValidationError`` if ``data`` cannot describe a valid record.

    ``auto_ttl`` says whether the target provider accepts the TTL 1 sentinel.
    """
    _check_type(data.type)
    if not data.name.strip():
        raise RecordValidationError("Record name must not be empty")
    _check_content(data.type, data.content)
    _check_ttl(data.ttl, auto_ttl)
    _check_priority(data.priority)


def validate_update(data: UpdateRecordInput, current_type: str | None = None, *, auto_ttl: bool = True) -> None:
    """Check the fields present in a partial update.

    Content is checked against the new type when one is given, otherwise
    against ``current_type`` (the record's type before the update).
    """
    if data.type is not None:
        _check_type(data.type)
    if data.name is not None and not data.name.strip():
        raise RecordValidationError("Record name must not be empty")
    if data.content is not None:
        _check_content(data.type or current_type or "", data.content)
    _check_ttl(data.ttl, auto_ttl)
    _check_priority(data.priority)
