"""Tests for the DNS provider registry."""

from unittest.mock import MagicMock

import pytest

from dns_manager.config import AppConfig
from dns_manager.errors import UnknownProviderError
from dns_manager.providers import ProviderRegistry, RegistryEntry
from dns_manager.providers.cloudflare import CloudflareProvider
from dns_manager.providers.huaweicloud import HuaweiCloudProvider
from dns_manager.providers.namecheap import NamecheapProvider


def _make_config(**overrides) -> AppConfig:
    defaults = {"encryption_key": "k"}
    defaults.update(overrides)
    return AppConfig(**defaults)


class TestProviderRegistry:
    def test_default_registers_all_seven_providers(self):
        registry = ProviderRegistry.default()

        assert registry.names() == [
            "cloudflare",
            "alidns",
            "dnspod",
            "route53",
            "huaweicloud",
            "godaddy",
            "namecheap",
        ]
        assert "Route53" in registry
        assert "powerdns" not in registry

    def test_create_builds_adapter_with_config_settings(self):
        registry = ProviderRegistry.default(_make_config(http_timeout=5.0, huawei_default_region="ap-southeast-1"))

        with registry.create("huaweicloud", {"accessKeyId": "ak", "secretAccessKey": "sk"}) as provider:
            assert isinstance(provider, HuaweiCloudProvider)
            assert provider.region == "ap-southeast-1"

    def test_create_is_case_insensitive(self):
        with ProviderRegistry.default().create("CloudFlare", {"apiToken": "tok"}) as provider:
            assert isinstance(provider, CloudflareProvider)

    def test_unknown_provider_raises(self):
        with pytest.raises(UnknownProviderError, match="Unknown DNS provider: 'powerdns'"):
            ProviderRegistry.default().create("powerdns", {})

    def test_missing_credential_raises_value_error(self):
        with pytest.raises(ValueError, match="credential 'clientIp' is required"):
            ProviderRegistry.default().create(
                "namecheap", {"apiUser": "u", "apiKey": "k", "userName": "u"}
            )

    def test_meta_and_available(self):
        registry = ProviderRegistry.default()

        assert registry.meta("namecheap") is NamecheapProvider.meta
        assert registry.meta("route53").capabilities.batch_writes is True
        assert len(registry.available()) == 7

    def test_register_rejects_duplicates(self):
        registry = ProviderRegistry([RegistryEntry(CloudflareProvider.meta, MagicMock())])

        with pytest.raises(ValueError, match="already registered"):
            registry.register("cloudflare", CloudflareProvider.meta, MagicMock())

    def test_custom_factory_receives_credentials(self):
        factory = MagicMock()
        registry = ProviderRegistry([RegistryEntry(CloudflareProvider.meta, factory)])

        provider = registry.create("cloudflare", {"apiToken": "tok"})

        factory.assert_called_once_with({"apiToken": "tok"})
        assert provider is factory.return_value
