"""Outbound URL policy: keep fetches away from private and internal targets."""

import ipaddress
import re
import socket
from dataclasses import dataclass
from urllib.parse import urlsplit

import structlog

log = structlog.get_logger()

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = frozenset({"localhost", "metadata", "metadata.google.internal"})

BLOCKED_HOST_SUFFIXES = (".localhost", ".internal", ".local")

BLOCKED_IPV4_NETWORKS = tuple(
    ipaddress.IPv4Network(net)
    for net in (
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "169.254.0.0/16",  # link-local, cloud metadata endpoints
    )
)

# Hostnames made only of these characters may be legacy IPv4 spellings
# such as 2130706433, 0x7f.1 or 127.1, which resolvers accept.
_NUMERIC_HOST_RE = re.compile(r"^(0x[0-9a-f]+|[0-9]+)(\.(0x[0-9a-f]+|[0-9]+)){0,3}$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking one URL against the fetch policy."""

    valid: bool
    error: str | None = None


def _blocked_ipv4(address: ipaddress.IPv4Address) -> bool:
    if address == ipaddress.IPv4Address("0.0.0.0"):
        return True
    return any(address in network for network in BLOCKED_IPV4_NETWORKS)


def _blocked_ip(address: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if isinstance(address, ipaddress.IPv4Address):
        return _blocked_ipv4(address)

    if address.ipv4_mapped is not None:
        return _blocked_ipv4(address.ipv4_mapped)
    return (
        address.is_loopback
        or address.is_unspecified
        or address.is_link_local
        or address.is_site_local
        or address in ipaddress.IPv6Network("fc00::/7")
    )


def _parse_ip(hostname: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Return the address a hostname literally names, if it names one."""
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        pass

    if _NUMERIC_HOST_RE.match(hostname):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(hostname))
        except OSError:
            return None
    return None


def is_blocked_hostname(hostname: str) -> bool:
    """Check whether a hostname points at a private or internal target.

    Args:
        hostname: Lower-cased host without port or IPv6 brackets.

    Returns:
        True if requests to this host must not be made.
    """
    hostname = hostname.rstrip(".")
    if not hostname:
        return True

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(BLOCKED_HOST_SUFFIXES):
        return True

    address = _parse_ip(hostname)
    return address is not None and _blocked_ip(address)


def validate_url(url: str) -> ValidationResult:
    """Check a candidate URL before any network call is made.

    Also used for every redirect target the fetcher sees.

    Args:
        url: Absolute URL supplied by a client or a Location header.

    Returns:
        ValidationResult with ``valid`` False and a reason when rejected.
    """
    if not url or not isinstance(url, str):
        return ValidationResult(False, "URL is required")

    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
        parsed.port  # raises ValueError for out-of-range or junk ports
    except ValueError:
        return ValidationResult(False, "URL is malformed")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return ValidationResult(False, "Only http and https URLs are supported")

    if not hostname:
        return ValidationResult(False, "URL has no host")

    if is_blocked_hostname(hostname):
        log.warning("url_blocked", host=hostname)
        return ValidationResult(False, "URLs pointing to private or internal networks are not allowed")

    return ValidationResult(True)
