"""Protocol definitions for hueping.

Contains:
- IcmpType enum for the echo message types of ICMP and ICMPv6
- Channel Protocol for type checking
- Default probe settings and the unprivileged interval floor
- Logging configuration
"""

import logging
import os
from enum import IntEnum
from typing import Protocol

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Skip the interval floor for unprivileged users (configurable via envvar)
UNRESTRICTED_ENV = "HUEPING_UNRESTRICTED"


class IcmpType(IntEnum):
    """Echo message types for ICMP (RFC 792) and ICMPv6 (RFC 4443)."""

    ECHO_REPLY = 0
    ECHO_REQUEST = 8
    ECHOV6_REQUEST = 128
    ECHOV6_REPLY = 129


class Channel(Protocol):
    """Protocol for the raw transport used by a probe exchange."""

    def send(self, packet: bytes, address: str, /) -> int: ...
    def recv(self, timeout_s: float, /) -> bytes | None: ...
    def close(self) -> None: ...
    def __enter__(self) -> "Channel": ...
    def __exit__(self, *exc_info: object) -> None: ...


# ICMP echo header: type, code, checksum, identifier, sequence
ECHO_HEADER_SIZE = 8

# Identifier and sequence are 16-bit fields on the wire
SEQUENCE_MODULUS = 1 << 16

# Default probe settings
DEFAULT_COUNT = 0  # 0 = until interrupted
DEFAULT_INTERVAL_S = 1.0
DEFAULT_TIMEOUT_S = 2.0
DEFAULT_PAYLOAD_SIZE = 56  # 64-byte packet with the echo header
MIN_USER_INTERVAL_S = 0.2  # Floor for users without raw flood rights


def unrestricted_from_env() -> bool:
    """Return True if the interval floor is lifted via the environment."""
    return os.environ.get(UNRESTRICTED_ENV, "") not in ("", "0")
