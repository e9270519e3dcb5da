"""SigV4-family signing: AWS Signature Version 4 and Huawei Cloud's SDK variant.

Both schemes share the canonical request / string-to-sign / chained-HMAC
structure and differ only in the constants captured by ``Scheme``.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import quote

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"


@dataclass(frozen=True)
class Scheme:
    algorithm: str
    key_prefix: str
    terminator: str
    date_header: str
    credential_label: str


AWS = Scheme(
    algorithm="AWS4-HMAC-SHA256",
    key_prefix="AWS4",
    terminator="aws4_request",
    date_header="x-amz-date",
    credential_label="Credential",
)

HUAWEI = Scheme(
    algorithm="SDK-HMAC-SHA256",
    key_prefix="SDK",
    terminator="sdk_request",
    date_header="x-sdk-date",
    credential_label="Access",
)


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode(), hashlib.sha256).digest()


def canonical_query_string(params: Mapping[str, str] | None) -> str:
    if not params:
        return ""
    encoded = sorted((quote(str(k), safe="-_.~"), quote(str(v), safe="-_.~")) for k, v in params.items())
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_request(
    method: str,
    path: str,
    query: Mapping[str, str] | None,
    headers: Mapping[str, str],
    body: bytes,
) -> tuple[str, str]:
    """Return ``(canonical_request, signed_headers)``; header names are lower-cased."""
    normalized = sorted((name.lower(), " ".join(value.split())) for name, value in headers.items())
    canonical_headers = "".join(f"{name}:{value}\n" for name, value in normalized)
    signed_headers = ";".join(name for name, _ in normalized)
    request = "\n".join(
        [
            method.upper(),
            quote(path, safe="/-_.~"),
            canonical_query_string(query),
            canonical_headers,
            signed_headers,
            hashlib.sha256(body).hexdigest(),
        ]
    )
    return request, signed_headers


def derive_signing_key(scheme: Scheme, secret: str, date: str, region: str, service: str) -> bytes:
    k_date = _hmac_sha256(f"{scheme.key_prefix}{secret}".encode(), date)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, scheme.terminator)


def credential_scope(scheme: Scheme, date: str, region: str, service: str) -> str:
    return f"{date}/{region}/{service}/{scheme.terminator}"


def string_to_sign(scheme: Scheme, amz_date: str, scope: str, canonical: str) -> str:
    digest = hashlib.sha256(canonical.encode()).hexdigest()
    return "\n".join([scheme.algorithm, amz_date, scope, digest])


def sign_string(scheme: Scheme, secret: str, date: str, region: str, service: str, to_sign: str) -> str:
    key = derive_signing_key(scheme, secret, date, region, service)
    return hmac.new(key, to_sign.encode(), hashlib.sha256).hexdigest()


def _sign(
    scheme: Scheme,
    *,
    method: str,
    host: str,
    path: str,
    query: Mapping[str, str] | None,
    body: bytes,
    access_key_id: str,
    secret: str,
    region: str,
    service: str,
    moment: datetime,
    signed_extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    amz_date = moment.astimezone(UTC).strftime(AMZ_DATE_FORMAT)
    date = amz_date[:8]
    headers = {"host": host, scheme.date_header: amz_date, **(signed_extra or {})}
    canonical, signed_headers = canonical_request(method, path, query, headers, body)
    scope = credential_scope(scheme, date, region, service)
    signature = sign_string(scheme, secret, date, region, service, string_to_sign(scheme, amz_date, scope, canonical))

    if scheme.credential_label == "Credential":
        credential = f"Credential={access_key_id}/{scope}"
    else:
        credential = f"{scheme.credential_label}={access_key_id}"
    return {
        scheme.date_header.title(): amz_date,
        "Authorization": f"{scheme.algorithm} {credential}, SignedHeaders={signed_headers}, Signature={signature}",
    }


def sign_aws(
    *,
    method: str,
    path: str,
    access_key_id: str,
    secret_access_key: str,
    moment: datetime,
    query: Mapping[str, str] | None = None,
    body: bytes = b"",
    host: str = "route53.amazonaws.com",
    region: str = "us-east-1",
    service: str = "route53",
) -> dict[str, str]:
    """Sign a Route53 request. Only ``host`` and ``x-amz-date`` are signed."""
    return _sign(
        AWS,
        method=method,
        host=host,
        path=path,
        query=query,
        body=body,
        access_key_id=access_key_id,
        secret=secret_access_key,
        region=region,
        service=service,
        moment=moment,
    )


def sign_huawei(
    *,
    method: str,
    path: str,
    access_key_id: str,
    secret_access_key: str,
    moment: datetime,
    query: Mapping[str, str] | None = None,
    body: bytes = b"",
    host: str = "dns.myhuaweicloud.com",
    region: str = "cn-north-1",
    service: str = "dns",
) -> dict[str, str]:
    """Sign a Huawei Cloud DNS request; ``content-type`` is part of the signature.

    ``X-Sdk-Date`` uses the compact ``YYYYMMDDTHHMMSSZ`` form the Huawei SDKs
    send, not ISO 8601, and the canonical URI always ends with a slash.
    """
    headers = _sign(
        HUAWEI,
        method=method,
        host=host,
        # the gateway canonicalizes every URI with a trailing slash
        path=path if path.endswith("/") else f"{path}/",
        query=query,
        body=body,
        access_key_id=access_key_id,
        secret=secret_access_key,
        region=region,
        service=service,
        moment=moment,
        signed_extra={"content-type": "application/json"},
    )
    headers["Content-Type"] = "application/json"
    return headers
