"""Tests for SigV4-family signing (AWS and Huawei Cloud)."""

from datetime import UTC, datetime

from dns_manager.signing import sigv4

_SECRET = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"
_MOMENT = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


class TestAwsDocumentedVectors:
    def test_canonical_request_hash(self):
        canonical, signed = sigv4.canonical_request(
            "GET",
            "/",
            {"Action": "ListUsers", "Version": "2010-05-08"},
            {
                "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
                "Host": "iam.amazonaws.com",
                "X-Amz-Date": "20150830T123600Z",
            },
            b"",
        )

        assert signed == "content-type;host;x-amz-date"
        assert canonical.split("\n")[2] == "Action=ListUsers&Version=2010-05-08"
        to_sign = sigv4.string_to_sign(sigv4.AWS, "20150830T123600Z", "20150830/us-east-1/iam/aws4_request", canonical)
        assert to_sign.split("\n")[3] == "f536975d06c0309214f805bb90ccff089219ecd68b2577efef23edd43b7e1a59"

    def test_signing_key(self):
        key = sigv4.derive_signing_key(sigv4.AWS, _SECRET, "20150830", "us-east-1", "iam")

        assert key.hex() == "c4afb1cc5771d871763a393e44b703571b55cc28424d1a5e86da6ed3c154a4b9"

    def test_signature(self):
        to_sign = "\n".join(
            [
                "AWS4-HMAC-SHA256",
                "20150830T123600Z",
                "20150830/us-east-1/iam/aws4_request",
                "f536975d06c0309214f805bb90ccff089219ecd68b2577efef23edd43b7e1a59",
            ]
        )

        signature = sigv4.sign_string(sigv4.AWS, _SECRET, "20150830", "us-east-1", "iam", to_sign)

        assert signature == "5d672d79c15b13162d9279b0855cfba6789a8edb4c82c400e06b5924a6f2b5d7"


def test_canonical_query_string_sorted_and_encoded():
    assert sigv4.canonical_query_string({"name": "a b.example.com.", "maxitems": "300", "type": "A"}) == (
        "maxitems=300&name=a%20b.example.com.&type=A"
    )
    assert sigv4.canonical_query_string(None) == ""


def test_sign_aws_headers():
    headers = sigv4.sign_aws(
        method="GET",
        path="/2013-04-01/hostedzone",
        access_key_id="AKIDEXAMPLE",
        secret_access_key=_SECRET,
        moment=_MOMENT,
    )

    assert headers["X-Amz-Date"] == "20250601T120000Z"
    assert headers["Authorization"].startswith(
        "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20250601/us-east-1/route53/aws4_request, "
        "SignedHeaders=host;x-amz-date, Signature="
    )


def test_sign_aws_body_changes_signature():
    common = {
        "method": "POST",
        "path": "/2013-04-01/hostedzone/Z1/rrset",
        "access_key_id": "AK",
        "secret_access_key": _SECRET,
        "moment": _MOMENT,
    }

    assert sigv4.sign_aws(body=b"<a/>", **common) != sigv4.sign_aws(body=b"<b/>", **common)


def test_sign_huawei_headers():
    headers = sigv4.sign_huawei(
        method="GET",
        path="/v2/zones",
        access_key_id="HWAK",
        secret_access_key="secret",
        moment=_MOMENT,
        query={"type": "public"},
    )

    assert headers["X-Sdk-Date"] == "20250601T120000Z"
    assert headers["Content-Type"] == "application/json"
    assert headers["Authorization"].startswith(
        "SDK-HMAC-SHA256 Access=HWAK, SignedHeaders=content-type;host;x-sdk-date, Signature="
    )


def test_sign_huawei_appends_trailing_slash():
    common = {
        "method": "GET",
        "access_key_id": "HWAK",
        "secret_access_key": "secret",
        "moment": _MOMENT,
    }

    assert sigv4.sign_huawei(path="/v2/zones", **common) == sigv4.sign_huawei(path="/v2/zones/", **common)


def test_sign_huawei_region_is_part_of_signature():
    common = {
        "method": "GET",
        "path": "/v2/zones",
        "access_key_id": "HWAK",
        "secret_access_key": "secret",
        "moment": _MOMENT,
    }

    assert sigv4.sign_huawei(region="cn-north-1", **common) != sigv4.sign_huawei(region="ap-southeast-1", **common)
