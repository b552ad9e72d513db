"""Host normalization and origin matching helpers."""

import re
from urllib.parse import urlsplit

HOSTNAME_PATTERN = re.compile(
    r"^(?=.{1,253}$)"
    r"(?:(?!-)[a-z0-9-]{1,63}(?<!-)\.)+"
    r"[a-z]{2,63}$"
)

NULL_ORIGIN = "null"


def normalize_host(value: str) -> str:
    """Reduce a user supplied domain to a bare lower-case host.

    Accepts ``popeye.com``, ``https://popeye.com/path?x=1`` or
    ``POPEYE.com:443`` and returns ``popeye.com``. Subdomains, ``www.``
    included, are kept: ``https://www.popeye.com`` registers ``www.popeye.com``.

    Raises:
        ValueError: if no valid hostname can be extracted
    """
    candidate = value.strip().lower()
    if not candidate:
        raise ValueError("Domain is required")

    if "://" not in candidate:
        candidate = f"//{candidate}"

    try:
        host = urlsplit(candidate).hostname
    except ValueError as e:
        raise ValueError(f"Invalid domain: {value}") from e

    if not host:
        raise ValueError(f"Invalid domain: {value}")

    host = host.rstrip(".")
    if not HOSTNAME_PATTERN.match(host):
        raise ValueError(f"Invalid domain format: {value}")

    return host


def _header_host(header_value: str | None) -> str | None:
    if not header_value:
        return None
    value = header_value.strip()
    if not value or value.lower() == NULL_ORIGIN:
        return None
    try:
        parts = urlsplit(value)
        host = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not host:
        return None
    return host.rstrip(".") or None


def extract_origin_host(origin: str | None, referer: str | None) -> str | None:
    """Return the requesting host from ``Origin``, falling back to ``Referer``.

    An ``Origin`` that yields no host (absent, ``null`` from sandboxed iframes
    or file://, no scheme, unparsable) moves on to ``Referer``.
    """
    return _header_host(origin) or _header_host(referer)


def host_matches(origin_host: str, registered_host: str, allow_subdomains: bool) -> bool:
    """Match a request host against one registered host.

    Without ``allow_subdomains`` only the exact host matches, so ``www.`` must
    be registered as such. With it, any subdomain on a dot boundary matches:
    ``notpopeye.com`` never matches ``popeye.com``.
    """
    origin_host = origin_host.lower()
    registered_host = registered_host.lower()

    if origin_host == registered_host:
        return True
    if allow_subdomains and origin_host.endswith(f".{registered_host}"):
        return True
    return False


def match_registered_host(
    origin_host: str, registered_hosts: list[str], allow_subdomains: bool
) -> str | None:
    """Return the registered host that authorizes ``origin_host``, if any.

    An exact match always wins over a subdomain match.
    """
    for registered in registered_hosts:
        if host_matches(origin_host, registered, allow_subdomains=False):
            return registered
    if allow_subdomains:
        for registered in registered_hosts:
            if host_matches(origin_host, registered, allow_subdomains=True):
                return registered
    return None
