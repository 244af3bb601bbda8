"""
Outbound URL checks for JWKS fetching.
"""

import asyncio
import ipaddress
import socket
from typing import List, Tuple
from urllib.parse import SplitResult, urlsplit

from shared.errors import NetworkError, SecurityError, ValidationError
from shared.logging import get_logger

from .paths import contains_traversal

ALLOWED_SCHEMES = ("http", "https")

logger = get_logger("validation.network")


def parse_jwks_url(url: str) -> Tuple[SplitResult, str, int]:
    """Split ``url`` and check scheme, host and path.

    Returns the split URL, its host and its effective port. Any scheme
    other than http(s) is a ``SecurityError``; a URL without a scheme or
    with an unusable host or port is a ``ValidationError``.
    """
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise ValidationError(f"Invalid JWKS URL format: {exc}", details={"url": url}) from exc

    if not parts.scheme:
        raise ValidationError("Invalid JWKS URL format: missing scheme", details={"url": url})

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise SecurityError(
            f"Invalid scheme '{parts.scheme}': JWKS URL must use http or https",
            details={"url": url},
        )

    try:
        port = parts.port
    except ValueError as exc:
        raise ValidationError(f"Invalid JWKS URL format: {exc}", details={"url": url}) from exc

    host = parts.hostname
    if not host:
        raise ValidationError("Invalid JWKS URL format: missing host", details={"url": url})
    _check_host_labels(host, url)

    if contains_traversal(parts.path):
        raise SecurityError("JWKS URL path contains traversal sequences", details={"url": url})

    if port is None:
        port = 443 if scheme == "https" else 80
    return parts, host, port


def _check_host_labels(host: str, url: str) -> None:
    try:
        ipaddress.ip_address(host)
        return
    except ValueError:
        pass
    try:
        host.encode("idna")
    except UnicodeError as exc:
        raise ValidationError(
            f"Invalid JWKS URL format: invalid host name ({exc})",
            details={"url": url},
        ) from exc


def is_internal_address(address: str) -> bool:
    """True for loopback, private, link-local and unspecified addresses."""
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip.is_loopback or ip.is_private or ip.is_link_local or ip.is_unspecified


async def resolve_host(host: str, port: int) -> List[str]:
    """Resolve ``host`` to the distinct addresses it currently maps to."""
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise NetworkError(f"Unable to resolve host: {host}", details={"error": str(exc)}) from exc
    except UnicodeError as exc:
        raise ValidationError(
            f"Invalid JWKS URL format: invalid host name ({exc})",
            details={"host": host},
        ) from exc
    return sorted({info[4][0] for info in infos})


async def ensure_public_host(host: str, port: int, resolver=resolve_host) -> str:
    """Reject hosts that resolve to an internal network address.

    Returns the checked address the fetch must connect to.
    """
    try:
        addresses = [str(ipaddress.ip_address(host))]
    except ValueError:
        addresses = await resolver(host, port)

    if not addresses:
        raise NetworkError(f"Unable to resolve host: {host}", details={"host": host})

    internal = [address for address in addresses if is_internal_address(address)]
    if internal:
        logger.warning("Blocked JWKS URL targeting internal address", host=host, addresses=internal)
        raise SecurityError(
            "JWKS URL resolves to a private or internal address",
            details={"host": host},
        )
    return addresses[0]
