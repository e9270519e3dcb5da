"""DNS provider registry: resolve a provider name to an adapter factory."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from functools import partial

from dns_manager.config import AppConfig
from dns_manager.errors import UnknownProviderError
from dns_manager.providers.aliyun import AliyunDnsProvider
from dns_manager.providers.base import DnsProvider, ProviderMeta
from dns_manager.providers.cloudflare import CloudflareProvider
from dns_manager.providers.dnspod import DnsPodProvider
from dns_manager.providers.godaddy import GoDaddyProvider
from dns_manager.providers.huaweicloud import HuaweiCloudProvider
from dns_manager.providers.namecheap import NamecheapProvider
from dns_manager.providers.route53 import Route53Provider

ProviderFactory = Callable[[Mapping[str, str]], DnsProvider]


@dataclass(frozen=True)
class RegistryEntry:
    meta: ProviderMeta
    factory: ProviderFactory


class ProviderRegistry:
    """Explicit map of provider name to adapter factory.

    Built once at startup and handed to whatever constructs adapters; there is
    no module-level registry to mutate.
    """

    def __init__(self, entries: Iterable[RegistryEntry] = ()) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        for entry in entries:
            self.register(entry.meta.name, entry.meta, entry.factory)

    @classmethod
    def default(cls, config: AppConfig | None = None) -> ProviderRegistry:
        """Registry with every built-in adapter, bound to ``config``'s HTTP settings."""
        timeout = config.http_timeout if config else 30.0
        parallel = config.max_parallel_writes if config else 4
        region = config.huawei_default_region if config else "cn-north-1"
        return cls(
            [
                RegistryEntry(
                    CloudflareProvider.meta,
                    partial(CloudflareProvider, timeout=timeout, max_parallel_writes=parallel),
                ),
                RegistryEntry(AliyunDnsProvider.meta, partial(AliyunDnsProvider, timeout=timeout)),
                RegistryEntry(DnsPodProvider.meta, partial(DnsPodProvider, timeout=timeout)),
                RegistryEntry(Route53Provider.meta, partial(Route53Provider, timeout=timeout)),
                RegistryEntry(
                    HuaweiCloudProvider.meta,
                    partial(HuaweiCloudProvider, timeout=timeout, default_region=region),
                ),
                RegistryEntry(GoDaddyProvider.meta, partial(GoDaddyProvider, timeout=timeout)),
                RegistryEntry(NamecheapProvider.meta, partial(NamecheapProvider, timeout=timeout)),
            ]
        )

    def register(self, name: str, meta: ProviderMeta, factory: ProviderFactory) -> None:
        key = name.lower()
        if key in self._entries:
            raise ValueError(f"DNS provider '{key}' is already registered")
        self._entries[key] = RegistryEntry(meta, factory)

    def _entry(self, name: str) -> RegistryEntry:
        try:
            return self._entries[name.lower()]
        except KeyError:
            raise UnknownProviderError(f"Unknown DNS provider: '{name}'") from None

    def create(self, name: str, credentials: Mapping[str, str]) -> DnsProvider:
        """Instantiate the adapter for ``name`` from decrypted credentials.

        Raises:
            UnknownProviderError: If no factory is registered under ``name``.
            ValueError: If a required credential field is missing.
        """
        return self._entry(name).factory(credentials)

    def meta(self, name: str) -> ProviderMeta:
        return self._entry(name).meta

    def available(self) -> list[ProviderMeta]:
        return [entry.meta for entry in self._entries.values()]

    def names(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries


__all__ = ["DnsProvider", "ProviderFactory", "ProviderMeta", "ProviderRegistry", "RegistryEntry"]
