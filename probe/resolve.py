"""Destination resolution for hueping."""

import ipaddress
import logging
import socket
from ipaddress import IPv4Address, IPv6Address

logger = logging.getLogger(__name__)


class ResolutionError(Exception):
    """Raised when a destination cannot be resolved to an address."""

    pass


def resolve(hostname: str) -> IPv4Address | IPv6Address:
    """Resolve hostname into an IP address.

    Literal IPv4/IPv6 addresses are returned as-is. Anything else goes
    through the system resolver and the first result is used.

    Raises:
        ResolutionError: If the lookup fails or returns nothing.
    """
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        pass

    try:
        results = socket.getaddrinfo(hostname, None, type=socket.SOCK_RAW)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"unable to resolve destination hostname {hostname!r}: {e}") from e
    if not results:
        raise ResolutionError("the resolver has returned an invalid result")

    # sockaddr[0] may carry a scope suffix for link-local IPv6
    address = ipaddress.ip_address(results[0][4][0].split("%", 1)[0])
    logger.debug(f"Resolved {hostname} to {address}")
    return address
