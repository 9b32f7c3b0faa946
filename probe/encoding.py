"""Echo packet encoding/decoding for hueping.

Each address family has its own echo variant:
- IcmpV4: ICMP Echo Request/Reply (type 8/0) over raw IPv4 sockets
- IcmpV6: ICMPv6 Echo Request/Reply (type 128/129) over raw IPv6 sockets

Echo header layout (network byte order):
  [1-byte type][1-byte code][2-byte checksum][2-byte identifier][2-byte sequence]

Raw IPv4 sockets deliver the IP header in front of the ICMP message, raw
IPv6 sockets do not. The kernel fills in the ICMPv6 checksum.
"""

import socket
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address

from probe.protocol import ECHO_HEADER_SIZE, SEQUENCE_MODULUS, IcmpType

_ECHO_HEADER = struct.Struct("!BBHHH")
_IPV4_MIN_HEADER_SIZE = 20


class EncodingError(Exception):
    """Raised when a received packet is truncated or malformed."""

    pass


class ConsistencyError(Exception):
    """Raised when a reply correlates to a probe that was never sent.

    With a single probe in flight, a reply carrying our identifier and a
    sequence ahead of the awaited one means the session state is broken.
    """

    pass


@dataclass(frozen=True)
class Probe:
    """Identity of one echo request on the wire."""

    identifier: int
    sequence: int


@dataclass(frozen=True)
class Reply:
    """Decoded echo reply header."""

    identifier: int
    sequence: int
    icmp_type: int


def checksum(data: bytes) -> int:
    """Compute the RFC 1071 internet checksum of data."""
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return ~total & 0xFFFF


def _pack_echo(icmp_type: int, identifier: int, sequence: int, payload: bytes, csum: int = 0) -> bytes:
    if not 0 <= identifier < SEQUENCE_MODULUS:
        raise ValueError(f"identifier out of range: {identifier}")
    if not 0 <= sequence < SEQUENCE_MODULUS:
        raise ValueError(f"sequence out of range: {sequence}")
    return _ECHO_HEADER.pack(icmp_type, 0, csum, identifier, sequence) + payload


def _unpack_echo(message: bytes) -> Reply:
    if len(message) < ECHO_HEADER_SIZE:
        raise EncodingError(f"ICMP message too short: {len(message)} bytes, need {ECHO_HEADER_SIZE}")
    icmp_type, _code, _csum, identifier, sequence = _ECHO_HEADER.unpack_from(message)
    return Reply(identifier=identifier, sequence=sequence, icmp_type=icmp_type)


class EchoFamily(ABC):
    """Echo request/reply handling for one address family."""

    name: str
    socket_family: int
    protocol: int
    request_type: IcmpType
    reply_type: IcmpType

    @abstractmethod
    def build_request(self, identifier: int, sequence: int, payload_size: int) -> bytes:
        """Return an echo request packet ready for the raw socket."""
        pass

    @abstractmethod
    def parse_reply(self, packet: bytes) -> Reply | None:
        """Decode a received packet.

        Returns None for anything that is not an echo reply.

        Raises:
            EncodingError: If the packet is truncated or malformed.
        """
        pass

    @abstractmethod
    def matches(self, probe: Probe, reply: Reply) -> bool:
        """Return True if reply answers probe."""
        pass

    def __repr__(self) -> str:
        return f"<EchoFamily {self.name}>"


class IcmpV4(EchoFamily):
    """ICMP echo over IPv4."""

    name = "icmp"
    socket_family = socket.AF_INET
    protocol = socket.IPPROTO_ICMP
    request_type = IcmpType.ECHO_REQUEST
    reply_type = IcmpType.ECHO_REPLY

    def build_request(self, identifier: int, sequence: int, payload_size: int) -> bytes:
        payload = bytes(payload_size)
        unsigned = _pack_echo(self.request_type, identifier, sequence, payload)
        return _pack_echo(self.request_type, identifier, sequence, payload, checksum(unsigned))

    def parse_reply(self, packet: bytes) -> Reply | None:
        if len(packet) < _IPV4_MIN_HEADER_SIZE:
            raise EncodingError(f"IPv4 packet too short: {len(packet)} bytes")
        version = packet[0] >> 4
        if version != 4:
            raise EncodingError(f"Not an IPv4 packet (version={version})")
        header_len = (packet[0] & 0x0F) * 4
        if header_len < _IPV4_MIN_HEADER_SIZE:
            raise EncodingError(f"Invalid IPv4 header length: {header_len}")

        reply = _unpack_echo(packet[header_len:])
        if reply.icmp_type != self.reply_type:
            return None
        return reply

    def matches(self, probe: Probe, reply: Reply) -> bool:
        """Correlate by identifier and sequence.

        Replies to earlier probes (timed out, then answered late) are stale and
        do not match. A sequence ahead of the probe is impossible with one
        probe in flight and raises ConsistencyError. Sequences wrap at 16 bits,
        so "ahead" uses serial-number arithmetic.
        """
        if reply.identifier != probe.identifier:
            return False
        if reply.sequence == probe.sequence:
            return True

        distance = (reply.sequence - probe.sequence) % SEQUENCE_MODULUS
        if distance < SEQUENCE_MODULUS // 2:
            raise ConsistencyError(
                f"Reply seq={reply.sequence} is ahead of awaited seq={probe.sequence} "
                f"(id={probe.identifier})"
            )
        return False


class IcmpV6(EchoFamily):
    """ICMPv6 echo over IPv6."""

    name = "icmpv6"
    socket_family = socket.AF_INET6
    protocol = socket.IPPROTO_ICMPV6
    request_type = IcmpType.ECHOV6_REQUEST
    reply_type = IcmpType.ECHOV6_REPLY

    def build_request(self, identifier: int, sequence: int, payload_size: int) -> bytes:
        # Checksum covers the IPv6 pseudo-header; the kernel computes it
        return _pack_echo(self.request_type, identifier, sequence, bytes(payload_size))

    def parse_reply(self, packet: bytes) -> Reply | None:
        reply = _unpack_echo(packet)
        if reply.icmp_type != self.reply_type:
            return None
        return reply

    def matches(self, probe: Probe, reply: Reply) -> bool:
        # FIXME: any echo reply is accepted, unlike IcmpV4 which correlates on
        # identifier and sequence. Replies to other pings on the host or to an
        # earlier timed-out probe are counted as this probe's answer.
        return True


ICMP_V4 = IcmpV4()
ICMP_V6 = IcmpV6()


def family_for(address: IPv4Address | IPv6Address) -> EchoFamily:
    """Return the echo variant for the address family of address."""
    if address.version == 4:
        return ICMP_V4
    return ICMP_V6
