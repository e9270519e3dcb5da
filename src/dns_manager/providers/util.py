"""Record-name and TTL helpers shared by the provider adapters."""

from __future__ import annotations

DEFAULT_UNPROXIED_TTL = 300
AUTO_TTL = 1

# Public suffixes with two labels that registrars treat as a single TLD.
_TWO_LABEL_SUFFIXES = frozenset(
    {
        "co.uk",
        "org.uk",
        "me.uk",
        "ac.uk",
        "com.au",
        "net.au",
        "org.au",
        "co.nz",
        "co.jp",
        "com.cn",
        "net.cn",
        "org.cn",
        "com.hk",
        "com.tw",
        "com.br",
        "co.in",
    }
)


def relative_name(fqdn: str, zone: str) -> str:
    """Return the zone-relative host part of ``fqdn`` (``"@"`` for the apex).

    Names that are already relative are returned unchanged.

    Args:
        fqdn: Record name, e.g. "www.example.com", "example.com" or "www".
        zone: Zone name, e.g. "example.com".
    """
    name = without_trailing_dot(fqdn)
    zone = without_trailing_dot(zone)
    if name in ("", "@") or name == zone:
        return "@"
    suffix = f".{zone}"
    if name.endswith(suffix):
        return name.removesuffix(suffix)
    return name


def absolute_name(host: str, zone: str) -> str:
    """Inverse of ``relative_name``: ``"@"``/empty map to the zone apex."""
    host = without_trailing_dot(host)
    zone = without_trailing_dot(zone)
    if host in ("", "@") or host == zone:
        return zone
    if host.endswith(f".{zone}"):
        return host
    return f"{host}.{zone}"


def with_trailing_dot(name: str) -> str:
    return name if name.endswith(".") else f"{name}."


def without_trailing_dot(name: str) -> str:
    return name.removesuffix(".")


def split_domain(domain: str) -> tuple[str, str]:
    """Split a registered domain into ``(sld, tld)``, e.g. "example.co.uk" -> ("example", "co.uk")."""
    parts = without_trailing_dot(domain).split(".")
    if len(parts) < 2 or not all(parts):
        raise ValueError(f"Invalid domain format: '{domain}'")
    if len(parts) > 2 and ".".join(parts[-2:]) in _TWO_LABEL_SUFFIXES:
        return ".".join(parts[:-2]), ".".join(parts[-2:])
    return ".".join(parts[:-1]), parts[-1]


def resolve_ttl(ttl: int | None, proxied: bool, default: int = AUTO_TTL) -> int:
    """Apply the "automatic" TTL sentinel rule.

    ``1`` means automatic and is only valid for proxied records; an unproxied
    record asking for it gets ``DEFAULT_UNPROXIED_TTL`` instead.
    """
    value = default if not ttl else ttl
    if value == AUTO_TTL and not proxied:
        return DEFAULT_UNPROXIED_TTL
    return value


def parse_retry_after(value: str | None, default: int = 60) -> int:
    """Parse a ``Retry-After`` header given in seconds; anything else falls back to ``default``."""
    if not value:
        return default
    try:
        seconds = int(value.strip())
    except ValueError:
        return default
    return seconds if seconds >= 0 else default


def merge_value(value, current):
    """Fetch-merge one field: ``None`` keeps ``current``."""
    return current if value is None else value


def split_priority(value: str) -> tuple[int | None, str]:
    """Split an MX-style ``"10 mail.example.com."`` value into ``(10, "mail.example.com.")``."""
    head, _, rest = value.partition(" ")
    if head.isdigit() and rest:
        return int(head), rest.strip()
    return None, value


def join_priority(priority: int | None, content: str) -> str:
    return content if priority is None else f"{priority} {content}"
