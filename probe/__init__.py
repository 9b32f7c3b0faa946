"""Probe building blocks for hueping.

This package contains the pieces shared by the probe session:
- protocol: IcmpType enum, default settings, Channel Protocol
- encoding: EchoFamily variants, Probe/Reply, internet checksum
- io: Raw socket channel
- resolve: Hostname to address resolution
- config: ProbeConfig and its validation
- render: Terminal colouring of round-trip times
- report: Reporting abstractions
"""

from probe.config import ConfigError, ProbeConfig, build_config
from probe.encoding import (
    ICMP_V4,
    ICMP_V6,
    ConsistencyError,
    EchoFamily,
    EncodingError,
    Probe,
    Reply,
    family_for,
)
from probe.io import TransportError, open_channel
from probe.protocol import (
    DEFAULT_COUNT,
    DEFAULT_INTERVAL_S,
    DEFAULT_PAYLOAD_SIZE,
    DEFAULT_TIMEOUT_S,
    MIN_USER_INTERVAL_S,
    Channel,
    IcmpType,
)
from probe.resolve import ResolutionError, resolve

__all__ = [
    # Protocol
    "IcmpType",
    "Channel",
    "DEFAULT_COUNT",
    "DEFAULT_INTERVAL_S",
    "DEFAULT_TIMEOUT_S",
    "DEFAULT_PAYLOAD_SIZE",
    "MIN_USER_INTERVAL_S",
    # Encoding
    "EchoFamily",
    "ICMP_V4",
    "ICMP_V6",
    "Probe",
    "Reply",
    "family_for",
    # Transport, resolution, config
    "open_channel",
    "resolve",
    "ProbeConfig",
    "build_config",
    # Exceptions
    "ConfigError",
    "ConsistencyError",
    "EncodingError",
    "ResolutionError",
    "TransportError",
]
