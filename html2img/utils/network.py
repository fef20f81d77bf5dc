"""
Network Helpers
===============

URL safety checks used before the render page is allowed to reach the network.
"""

import ipaddress
from urllib.parse import urlsplit

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}


def is_safe_url(url: str) -> bool:
    """
    Check whether a URL may be fetched from inside the render sandbox.

    Only http(s) URLs are allowed, and never towards localhost, loopback,
    private, link-local or otherwise reserved addresses.

    Args:
        url: Absolute URL to check

    Returns:
        True if the URL targets a public http(s) host
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    if parts.scheme not in ("http", "https"):
        return False

    hostname = (parts.hostname or "").lower()
    if not hostname or hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        return False

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        # Plain DNS name
        return True

    return not (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
        or address.is_multicast
    )
