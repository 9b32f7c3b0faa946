"""Probe configuration for hueping.

Contains:
- ConfigError: Raised for invalid probe settings
- ProbeConfig: Validated settings for one ping session
- build_config: Validate, apply the interval floor and resolve the destination
"""

import logging
import math
import os
from collections.abc import Callable
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address

from probe.protocol import (
    DEFAULT_COUNT,
    DEFAULT_INTERVAL_S,
    DEFAULT_PAYLOAD_SIZE,
    DEFAULT_TIMEOUT_S,
    ECHO_HEADER_SIZE,
    MIN_USER_INTERVAL_S,
)
from probe.resolve import resolve

logger = logging.getLogger(__name__)

# Payload plus echo header must fit in an IPv4 datagram
MAX_PAYLOAD_SIZE = 65507 - ECHO_HEADER_SIZE


class ConfigError(ValueError):
    """Raised when probe settings are invalid."""

    pass


@dataclass(frozen=True)
class ProbeConfig:
    """Settings for one ping session.

    Attributes:
        destination: Resolved address; selects ICMP or ICMPv6.
        count: Number of probes to send, 0 = until interrupted.
        interval_s: Minimum time between the start of two probes.
        timeout_s: Time to wait for each reply.
        payload_size: Echo payload bytes after the 8-byte header.
    """

    destination: IPv4Address | IPv6Address
    count: int = DEFAULT_COUNT
    interval_s: float = DEFAULT_INTERVAL_S
    timeout_s: float = DEFAULT_TIMEOUT_S
    payload_size: int = DEFAULT_PAYLOAD_SIZE

    def __post_init__(self) -> None:
        """Validate invariants."""
        validate_settings(self.count, self.interval_s, self.timeout_s, self.payload_size)


def validate_settings(count: int, interval_s: float, timeout_s: float, payload_size: int) -> None:
    """Raise ConfigError if any probe setting is out of range."""
    if count < 0:
        raise ConfigError("the value of 'count' cannot be negative")
    if not math.isfinite(interval_s):
        raise ConfigError("the value of 'interval' must be a finite number")
    if interval_s < 0:
        raise ConfigError("the value of 'interval' cannot be negative")
    if not math.isfinite(timeout_s):
        raise ConfigError("the value of 'timeout' must be a finite number")
    if timeout_s < 0:
        raise ConfigError("the value of 'timeout' cannot be negative")
    if not 0 <= payload_size <= MAX_PAYLOAD_SIZE:
        raise ConfigError(f"the value of 'size' must be between 0 and {MAX_PAYLOAD_SIZE}")


def is_privileged() -> bool:
    """Return True if running as root."""
    return os.getuid() == 0


def clamp_interval(interval_s: float, unrestricted: bool = False) -> float:
    """Apply the flood floor for unprivileged users."""
    if interval_s >= MIN_USER_INTERVAL_S or unrestricted or is_privileged():
        return interval_s
    floor_ms = int(MIN_USER_INTERVAL_S * 1000)
    logger.warning(f"cannot flood; minimal interval allowed for user is {floor_ms}ms")
    logger.warning(f"interval will be set to {floor_ms}ms")
    return MIN_USER_INTERVAL_S


def build_config(
    destination: str,
    count: int = DEFAULT_COUNT,
    interval_s: float = DEFAULT_INTERVAL_S,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    payload_size: int = DEFAULT_PAYLOAD_SIZE,
    unrestricted: bool = False,
    resolver: Callable[[str], IPv4Address | IPv6Address] = resolve,
) -> ProbeConfig:
    """Build a ProbeConfig from user input.

    Settings are validated before the destination is resolved, so a bad flag
    never triggers a DNS lookup.

    Raises:
        ConfigError: If a setting is invalid.
        ResolutionError: If the destination cannot be resolved.
    """
    if not destination or not destination.strip():
        raise ConfigError("the destination cannot be empty")
    validate_settings(count, interval_s, timeout_s, payload_size)

    interval_s = clamp_interval(interval_s, unrestricted)
    address = resolver(destination.strip())

    return ProbeConfig(
        destination=address,
        count=count,
        interval_s=interval_s,
        timeout_s=timeout_s,
        payload_size=payload_size,
    )
