"""
URL checks for links harvested from scraped pages and upstream payloads.

Scraped listing pages decide which detail pages get fetched next, so every
harvested link is checked before a request is made:
- scheme must be https (http optionally allowed for display links)
- no localhost, loopback or private/reserved IP literals
- host must belong to the expected domain when an allowlist is given
"""

import ipaddress
from typing import Optional
from urllib.parse import urlparse

import structlog

logger = structlog.get_logger()


class UnsafeUrlError(ValueError):
    """Raised when a URL must not be requested or shown."""


BLOCKED_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("224.0.0.0/4"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("::1/128"),
]

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain"}


def validate_url(
    url: str,
    allowed_domains: Optional[set[str]] = None,
    require_https: bool = True,
) -> str:
    """Check a URL and return it stripped.

    Raises:
        UnsafeUrlError: If the URL is malformed or points somewhere it must not
    """
    if not url or not isinstance(url, str):
        raise UnsafeUrlError("URL must be a non-empty string")

    url = url.strip()
    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    allowed_schemes = ("https",) if require_https else ("http", "https")
    if scheme not in allowed_schemes:
        raise UnsafeUrlError(f"Scheme {scheme or '(none)'}:// is not allowed")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise UnsafeUrlError("URL must include a hostname")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        raise UnsafeUrlError(f"Access to {hostname} is blocked")

    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        ip = None
    if ip is not None and any(ip.version == net.version and ip in net for net in BLOCKED_NETWORKS):
        raise UnsafeUrlError(f"Access to {hostname} is blocked (private or reserved address)")

    if allowed_domains is not None and not _in_domains(hostname, allowed_domains):
        raise UnsafeUrlError(f"Domain {hostname} is not in the allowed domains list")

    return url


def _in_domains(hostname: str, domains: set[str]) -> bool:
    """Exact match or subdomain of an allowed domain."""
    return any(hostname == d.lower() or hostname.endswith("." + d.lower()) for d in domains)


def safe_link(url: Optional[str]) -> Optional[str]:
    """Return a displayable http(s) link, or None for anything else."""
    if not url:
        return None
    try:
        return validate_url(url, require_https=False)
    except UnsafeUrlError as e:
        logger.debug("link_rejected", url=url, error=str(e))
        return None
