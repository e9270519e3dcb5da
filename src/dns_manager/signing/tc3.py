"""Tencent Cloud TC3-HMAC-SHA256 signing (API 3.0), used by DNSPod."""

from __future__ import annotations

import hashlib
import hmac
from datetime import UTC, datetime

ALGORITHM = "TC3-HMAC-SHA256"
CONTENT_TYPE = "application/json; charset=utf-8"
SIGNED_HEADERS = "content-type;host;x-tc-action"


def _sha256_hex(message: str) -> str:
    return hashlib.sha256(message.encode()).hexdigest()


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode(), hashlib.sha256).digest()


def request_date(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, UTC).strftime("%Y-%m-%d")


def canonical_request(action: str, payload: str, host: str) -> str:
    canonical_headers = f"content-type:{CONTENT_TYPE}\nhost:{host}\nx-tc-action:{action.lower()}\n"
    return "\n".join(["POST", "/", "", canonical_headers, SIGNED_HEADERS, _sha256_hex(payload)])


def string_to_sign(canonical: str, timestamp: int, service: str) -> str:
    scope = f"{request_date(timestamp)}/{service}/tc3_request"
    return "\n".join([ALGORITHM, str(timestamp), scope, _sha256_hex(canonical)])


def derive_signing_key(secret_key: str, date: str, service: str) -> bytes:
    secret_date = _hmac_sha256(f"TC3{secret_key}".encode(), date)
    secret_service = _hmac_sha256(secret_date, service)
    return _hmac_sha256(secret_service, "tc3_request")


def sign_request(
    *,
    secret_id: str,
    secret_key: str,
    action: str,
    payload: str,
    timestamp: int,
    host: str,
    service: str,
    version: str,
    region: str = "",
) -> dict[str, str]:
    """Return the full header set for a signed POST to ``https://{host}/``."""
    date = request_date(timestamp)
    to_sign = string_to_sign(canonical_request(action, payload, host), timestamp, service)
    signature = hmac.new(
        derive_signing_key(secret_key, date, service),
        to_sign.encode(),
        hashlib.sha256,
    ).hexdigest()
    authorization = (
        f"{ALGORITHM} Credential={secret_id}/{date}/{service}/tc3_request, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )
    return {
        "Authorization": authorization,
        "Content-Type": CONTENT_TYPE,
        "Host": host,
        "X-TC-Action": action,
        "X-TC-Version": version,
        "X-TC-Timestamp": str(timestamp),
        "X-TC-Region": region,
    }
