"""
URL Policy Validator
====================

Turns decrypted plaintext into a TargetRequest, allowing only absolute
http/https URLs. Loopback and private-network filtering is opt-in
(``BLOCK_PRIVATE_HOSTS``) and works on the literal host only; no DNS
lookups are made.
"""

import ipaddress
import logging

import httpx

from ..errors import HostNotAllowedError, InvalidTargetURLError, SchemeNotAllowedError
from ..models import TargetRequest

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})

_LOCAL_HOSTNAMES = frozenset({"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"})


def is_private_host(host: str) -> bool:
    """
    Check whether a URL host names the local machine or a private network.

    Args:
        host: Hostname or IP literal as parsed from the URL (no brackets)

    Returns:
        True for localhost names and loopback/private/link-local/reserved IPs
    """
    hostname = host.lower().rstrip(".")
    if hostname in _LOCAL_HOSTNAMES or hostname.endswith(".localhost"):
        return True

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False

    return (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def validate_target(plaintext: str, block_private_hosts: bool = False) -> TargetRequest:
    """
    Parse and validate decrypted plaintext as the proxy target.

    Args:
        plaintext: Trimmed decrypted text
        block_private_hosts: Also reject loopback/private hosts

    Returns:
        TargetRequest for the outbound fetch

    Raises:
        InvalidTargetURLError: Not an absolute URL
        SchemeNotAllowedError: Scheme other than http/https
        HostNotAllowedError: Private host while filtering is enabled
    """
    try:
        url = httpx.URL(plaintext)
    except (httpx.InvalidURL, TypeError, ValueError):
        raise InvalidTargetURLError()

    scheme = url.scheme.lower()
    if not scheme:
        raise InvalidTargetURLError()

    if scheme not in ALLOWED_SCHEMES:
        raise SchemeNotAllowedError()

    if not url.host:
        raise InvalidTargetURLError()

    if block_private_hosts and is_private_host(url.host):
        logger.info("Rejected private target host", extra={"host": url.host})
        raise HostNotAllowedError()

    return TargetRequest(url=url)
