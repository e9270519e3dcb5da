"""Configuration loading and validation from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_HTTP_TIMEOUT = 30.0
_DEFAULT_MAX_PARALLEL_WRITES = 4
_DEFAULT_HUAWEI_REGION = "cn-north-1"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration loaded from environment variables."""

    encryption_key: str
    http_timeout: float = _DEFAULT_HTTP_TIMEOUT
    max_parallel_writes: int = _DEFAULT_MAX_PARALLEL_WRITES
    huawei_default_region: str = _DEFAULT_HUAWEI_REGION


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ValueError(f"Required environment variable {name} is not set")
    return value


def load_config() -> AppConfig:
    """Load and validate application configuration from environment variables."""
    encryption_key = _require_env("DNS_MANAGER_ENCRYPTION_KEY")

    raw_timeout = os.environ.get("DNS_MANAGER_HTTP_TIMEOUT", str(_DEFAULT_HTTP_TIMEOUT))
    try:
        http_timeout = float(raw_timeout)
    except ValueError:
        raise ValueError(f"DNS_MANAGER_HTTP_TIMEOUT must be a number, got: {raw_timeout!r}")
    if http_timeout <= 0:
        raise ValueError(f"DNS_MANAGER_HTTP_TIMEOUT must be positive, got: {http_timeout}")

    raw_workers = os.environ.get("DNS_MANAGER_MAX_PARALLEL_WRITES", str(_DEFAULT_MAX_PARALLEL_WRITES))
    try:
        max_parallel_writes = int(raw_workers)
    except ValueError:
        raise ValueError(f"DNS_MANAGER_MAX_PARALLEL_WRITES must be an integer, got: {raw_workers!r}")
    if max_parallel_writes < 1:
        raise ValueError(
            f"DNS_MANAGER_MAX_PARALLEL_WRITES must be a positive integer, got: {max_parallel_writes}"
        )

    huawei_default_region = os.environ.get("DNS_MANAGER_HUAWEI_REGION") or _DEFAULT_HUAWEI_REGION

    return AppConfig(
        encryption_key=encryption_key,
        http_timeout=http_timeout,
        max_parallel_writes=max_parallel_writes,
        huawei_default_region=huawei_default_region,
    )
