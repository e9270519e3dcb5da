"""Aliyun RPC-style HMAC-SHA1 query-string signing (SignatureVersion 1.0)."""

from __future__ import annotations

import hashlib
import hmac
from base64 import b64encode
from collections.abc import Mapping
from datetime import UTC, datetime
from urllib.parse import quote

API_VERSION = "2015-01-09"


def percent_encode(value: str) -> str:
    """RFC3986 encoding as Aliyun expects it: space is %20, ``*`` is %2A, ``~`` stays."""
    return quote(str(value), safe="~")


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def canonical_query(params: Mapping[str, str]) -> str:
    return "&".join(
        f"{percent_encode(key)}={percent_encode(value)}" for key, value in sorted(params.items())
    )


def string_to_sign(params: Mapping[str, str], method: str = "GET") -> str:
    return f"{method}&{percent_encode('/')}&{percent_encode(canonical_query(params))}"


def sign_params(params: Mapping[str, str], secret: str, method: str = "GET") -> str:
    digest = hmac.new(
        f"{secret}&".encode(),
        string_to_sign(params, method).encode(),
        hashlib.sha1,
    ).digest()
    return b64encode(digest).decode()


def common_params(
    action: str,
    access_key_id: str,
    *,
    timestamp: datetime,
    nonce: str,
    version: str = API_VERSION,
) -> dict[str, str]:
    return {
        "Format": "JSON",
        "Version": version,
        "AccessKeyId": access_key_id,
        "SignatureMethod": "HMAC-SHA1",
        "Timestamp": format_timestamp(timestamp),
        "SignatureVersion": "1.0",
        "SignatureNonce": nonce,
        "Action": action,
    }


def signed_query(
    action: str,
    params: Mapping[str, str],
    access_key_id: str,
    secret: str,
    *,
    timestamp: datetime,
    nonce: str,
    version: str = API_VERSION,
) -> str:
    """Return the complete, already-encoded query string including ``Signature``."""
    all_params = common_params(action, access_key_id, timestamp=timestamp, nonce=nonce, version=version)
    all_params.update({key: str(value) for key, value in params.items()})
    signature = sign_params(all_params, secret)
    return f"{canonical_query(all_params)}&Signature={percent_encode(signature)}"
