"""Tests for the Namecheap DNS provider."""

from unittest.mock import MagicMock

import httpx
import pytest

from dns_manager.errors import AuthenticationError, DomainNotFoundError, ProviderError, RecordNotFoundError
from dns_manager.models import CreateRecordInput, UpdateRecordInput
from dns_manager.providers.namecheap import NamecheapProvider

_ENDPOINT = "https://api.namecheap.com/xml.response"
_CREDS = {"apiUser": "apiuser", "apiKey": "apikey", "userName": "user", "clientIp": "198.51.100.7"}


def _ok(command_response: str) -> httpx.Response:
    return httpx.Response(
        200,
        text=(
            '<?xml version="1.0" encoding="utf-8"?>'
            '<ApiResponse Status="OK" xmlns="http://api.namecheap.com/xml.response">'
            f"<Errors /><CommandResponse>{command_response}</CommandResponse></ApiResponse>"
        ),
    )


def _err(number: str, message: str) -> httpx.Response:
    return httpx.Response(
        200,
        text=(
            '<ApiResponse Status="ERROR" xmlns="http://api.namecheap.com/xml.response">'
            f'<Errors><Error Number="{number}">{message}</Error></Errors></ApiResponse>'
        ),
    )


def _hosts(*hosts: str) -> httpx.Response:
    return _ok(f'<DomainDNSGetHostsResult Domain="example.com" IsUsingOurDNS="true">{"".join(hosts)}</DomainDNSGetHostsResult>')


_A = '<host HostId="101" Name="@" Type="A" Address="192.0.2.1" MXPref="10" TTL="1800" />'
_MX = '<host HostId="102" Name="@" Type="MX" Address="mx.example.com." MXPref="10" TTL="3600" />'
_WWW = '<host HostId="103" Name="www" Type="CNAME" Address="example.com." MXPref="10" TTL="1800" />'
_SET_OK = _ok('<DomainDNSSetHostsResult Domain="example.com" IsSuccess="true" />')


def _provider(*responses):
    client = MagicMock()
    client.request.side_effect = list(responses)
    return NamecheapProvider(_CREDS, _http_client=client), client


def _set_hosts_form(client) -> dict:
    call = next(c for c in reversed(client.request.call_args_list) if c.args[0] == "POST")
    assert call.args == ("POST", _ENDPOINT)
    return call.kwargs["data"]


class TestNamecheapRequest:
    def test_auth_params_on_every_call(self):
        provider, client = _provider(_hosts(_A))

        provider.list_records("example.com")

        params = client.request.call_args.kwargs["params"]
        assert params == {
            "ApiUser": "apiuser",
            "ApiKey": "apikey",
            "UserName": "user",
            "ClientIp": "198.51.100.7",
            "Command": "namecheap.domains.dns.getHosts",
            "SLD": "example",
            "TLD": "com",
        }

    def test_auth_error_code(self):
        provider, _ = _provider(_err("1011102", "Parameter APIKey is invalid"))

        assert provider.validate_credentials() is False

    def test_whitelist_error_is_auth(self):
        provider, _ = _provider(_err("1011150", "Invalid request IP"))

        with pytest.raises(AuthenticationError):
            provider.list_domains()

    def test_domain_not_found(self):
        provider, _ = _provider(_err("2019166", "Domain not found"))

        with pytest.raises(DomainNotFoundError) as exc_info:
            provider.list_records("missing.com")
        assert exc_info.value.domain_id == "missing.com"

    def test_generic_error(self):
        provider, _ = _provider(_err("3050900", "Unknown error from Enom"))

        with pytest.raises(ProviderError, match="Unknown error from Enom") as exc_info:
            provider.list_domains()
        assert exc_info.value.code == "3050900"

    def test_invalid_xml(self):
        provider, _ = _provider(httpx.Response(200, text="<html><body>gateway"))

        with pytest.raises(ProviderError) as exc_info:
            provider.list_domains()
        assert exc_info.value.code == "PARSE_ERROR"


class TestNamecheapDomains:
    def test_list_domains_paginates(self):
        page1 = _ok(
            '<DomainGetListResult><Domain ID="1" Name="example.com" Created="06/13/2019" Expires="06/13/2026" '
            'IsExpired="false" IsLocked="false" AutoRenew="true" /></DomainGetListResult>'
            "<Paging><TotalItems>2</TotalItems><CurrentPage>1</CurrentPage><PageSize>1</PageSize></Paging>"
        )
        page2 = _ok(
            '<DomainGetListResult><Domain ID="2" Name="old.net" IsExpired="true" /></DomainGetListResult>'
            "<Paging><TotalItems>2</TotalItems><CurrentPage>2</CurrentPage><PageSize>1</PageSize></Paging>"
        )
        provider, client = _provider(page1, page2)

        domains = provider.list_domains()

        assert [(d.id, d.status) for d in domains] == [("example.com", "active"), ("old.net", "inactive")]
        assert domains[0].extra["auto_renew"] is True
        assert domains[0].created_at.year == 2019
        assert client.request.call_args.kwargs["params"]["Page"] == "2"

    def test_get_domain(self):
        provider, _ = _provider(
            _ok(
                '<DomainGetInfoResult Status="Ok" ID="1" DomainName="example.com">'
                "<DomainDetails><CreatedDate>06/13/2019</CreatedDate><ExpiredDate>06/13/2026</ExpiredDate></DomainDetails>"
                '<DnsDetails ProviderType="FREE"><Nameserver>dns1.registrar-servers.com</Nameserver>'
                "<Nameserver>dns2.registrar-servers.com</Nameserver></DnsDetails></DomainGetInfoResult>"
            )
        )

        domain = provider.get_domain("example.com")

        assert domain.status == "active"
        assert domain.name_servers == ("dns1.registrar-servers.com", "dns2.registrar-servers.com")
        assert domain.extra["expires"] == "06/13/2026"


class TestNamecheapRecords:
    def test_list_records(self):
        provider, _ = _provider(_hosts(_A, _MX, _WWW))

        records = provider.list_records("example.com")

        assert [r.id for r in records] == ["101", "102", "103"]
        assert [r.name for r in records] == ["example.com", "example.com", "www.example.com"]
        assert records[0].priority is None
        assert records[1].priority == 10

    def test_empty_zone(self):
        provider, _ = _provider(_ok('<DomainDNSGetHostsResult Domain="example.com" IsUsingOurDNS="true" />'))

        assert provider.list_records("example.com") == []

    def test_two_label_suffix(self):
        provider, client = _provider(_hosts())

        provider.list_records("example.co.uk")

        params = client.request.call_args.kwargs["params"]
        assert (params["SLD"], params["TLD"]) == ("example", "co.uk")

    def test_create_rewrites_zone_and_resolves_host_id(self):
        new_host = '<host HostId="104" Name="api" Type="A" Address="192.0.2.8" MXPref="10" TTL="1800" />'
        provider, client = _provider(_hosts(_A, _MX), _SET_OK, _hosts(_A, _MX, new_host))

        record = provider.create_record("example.com", CreateRecordInput(type="A", name="api", content="192.0.2.8"))

        form = _set_hosts_form(client)
        assert form["Command"] == "namecheap.domains.dns.setHosts"
        assert (form["HostName1"], form["RecordType1"], form["Address1"]) == ("@", "A", "192.0.2.1")
        assert (form["HostName2"], form["MXPref2"]) == ("@", "10")
        assert "MXPref1" not in form
        assert (form["HostName3"], form["Address3"], form["TTL3"]) == ("api", "192.0.2.8", "1800")
        assert record.id == "104"

    def test_update_replaces_one_host(self):
        updated = '<host HostId="105" Name="www" Type="CNAME" Address="other.example.net." MXPref="10" TTL="300" />'
        provider, client = _provider(_hosts(_A, _WWW), _SET_OK, _hosts(_A, updated))

        record = provider.update_record(
            "example.com", "103", UpdateRecordInput(content="other.example.net.", ttl=300)
        )

        form = _set_hosts_form(client)
        assert (form["HostName2"], form["Address2"], form["TTL2"]) == ("www", "other.example.net.", "300")
        assert form["Address1"] == "192.0.2.1"
        assert record.id == "105"

    def test_update_missing(self):
        provider, _ = _provider(_hosts(_A))

        with pytest.raises(RecordNotFoundError):
            provider.update_record("example.com", "999", UpdateRecordInput(ttl=300))

    def test_delete_filters_host(self):
        provider, client = _provider(_hosts(_A, _MX, _WWW), _SET_OK)

        provider.delete_record("example.com", "102")

        form = _set_hosts_form(client)
        assert [form[f"RecordType{i}"] for i in (1, 2)] == ["A", "CNAME"]
        assert "HostName3" not in form

    def test_delete_missing(self):
        provider, client = _provider(_hosts(_A))

        with pytest.raises(RecordNotFoundError):
            provider.delete_record("example.com", "999")
        assert client.request.call_count == 1

    def test_batch_delete_single_write(self):
        provider, client = _provider(_hosts(_A, _MX, _WWW), _SET_OK)

        provider.batch_delete_records("example.com", ["101", "103", "nope"])

        form = _set_hosts_form(client)
        assert form["RecordType1"] == "MX"
        assert "HostName2" not in form
        assert client.request.call_count == 2

    def test_batch_delete_nothing_matching_skips_write(self):
        provider, client = _provider(_hosts(_A))

        provider.batch_delete_records("example.com", ["nope"])

        assert client.request.call_count == 1
