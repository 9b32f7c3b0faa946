"""pytest configuration and fixtures for hueping tests.

Provides:
- FakeClock: Manually advanced monotonic nanosecond clock
- FakeChannel: Scripted raw channel driven by a FakeClock
- Echo reply packet builders for IPv4 (with IP header) and IPv6
- Marker registration for unit tests
"""

import io
import struct
from collections.abc import Callable
from types import SimpleNamespace

import pytest
from rich.console import Console

from probe.encoding import EchoFamily, checksum
from probe.io import TransportError
from probe.protocol import IcmpType

NS_PER_S = 1_000_000_000


class FakeClock:
    """Monotonic clock in nanoseconds that only moves when told to."""

    def __init__(self, start_ns: int = 1_000 * NS_PER_S) -> None:
        self.now_ns = start_ns

    def __call__(self) -> int:
        return self.now_ns

    def advance(self, ns: int) -> None:
        self.now_ns += ns


class FakeChannel:
    """Scripted raw channel.

    Inbound packets are (arrival_ns, packet) pairs where arrival_ns is relative
    to the moment the echo request was sent. recv() advances the clock to the
    arrival time of the next packet, or by the whole wait if none arrives in
    time.
    """

    def __init__(
        self,
        clock: FakeClock,
        inbound: list[tuple[int, bytes]] | None = None,
        fail_send: bool = False,
    ) -> None:
        self.clock = clock
        self.inbound = list(inbound or [])
        self.fail_send = fail_send
        self.sent: list[tuple[bytes, str]] = []
        self.waits: list[float] = []
        self.closed = False
        self._sent_ns: int | None = None

    def send(self, packet: bytes, address: str, /) -> int:
        if self.fail_send:
            raise TransportError("Network is unreachable")
        self.sent.append((packet, address))
        self._sent_ns = self.clock.now_ns
        return len(packet)

    def recv(self, timeout_s: float, /) -> bytes | None:
        assert self._sent_ns is not None, "recv before send"
        assert timeout_s > 0, "recv must be given a positive bound"
        self.waits.append(timeout_s)
        wait_ns = round(timeout_s * NS_PER_S)

        if self.inbound:
            offset_ns, packet = self.inbound[0]
            arrival_ns = self._sent_ns + offset_ns
            if arrival_ns <= self.clock.now_ns + wait_ns:
                self.inbound.pop(0)
                self.clock.now_ns = max(self.clock.now_ns, arrival_ns)
                return packet

        self.clock.advance(wait_ns)
        return None

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeChannel":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _echo(icmp_type: int, identifier: int, sequence: int, payload: bytes) -> bytes:
    header = struct.pack("!BBHHH", icmp_type, 0, 0, identifier, sequence)
    csum = checksum(header + payload)
    return struct.pack("!BBHHH", icmp_type, 0, csum, identifier, sequence) + payload


def ipv4_packet(icmp: bytes, src: bytes = b"\x01\x01\x01\x01") -> bytes:
    """Prefix icmp with a 20-byte IPv4 header as a raw socket delivers it."""
    total = 20 + len(icmp)
    header = struct.pack(
        "!BBHHHBBH4s4s", 0x45, 0, total, 0x1234, 0, 64, 1, 0, src, b"\x0a\x00\x00\x02"
    )
    return header + icmp


def v4_reply(identifier: int, sequence: int, payload: bytes = b"", icmp_type: int = IcmpType.ECHO_REPLY) -> bytes:
    """Raw IPv4 packet carrying an ICMP echo message."""
    return ipv4_packet(_echo(icmp_type, identifier, sequence, payload))


def v6_reply(identifier: int, sequence: int, payload: bytes = b"", icmp_type: int = IcmpType.ECHOV6_REPLY) -> bytes:
    """ICMPv6 message as a raw IPv6 socket delivers it (no IP header)."""
    return _echo(icmp_type, identifier, sequence, payload)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_channel(clock: FakeClock) -> Callable[..., Callable[[EchoFamily], FakeChannel]]:
    """Return a factory that builds an open_channel replacement.

    The returned opener records every channel it hands out in .channels and
    the families it was asked for in .families.
    """

    def factory(inbound: list[tuple[int, bytes]] | None = None, fail_send: bool = False):
        def opener(family: EchoFamily) -> FakeChannel:
            channel = FakeChannel(clock, inbound, fail_send=fail_send)
            opener.channels.append(channel)
            opener.families.append(family)
            return channel

        opener.channels = []
        opener.families = []
        return opener

    return factory


@pytest.fixture
def packets() -> SimpleNamespace:
    """Packet builders: packets.v4_reply(...), packets.v6_reply(...)."""
    return SimpleNamespace(v4_reply=v4_reply, v6_reply=v6_reply, ipv4_packet=ipv4_packet)


@pytest.fixture
def out() -> Console:
    """Console writing plain text to a buffer; read with out.file.getvalue()."""
    return Console(file=io.StringIO(), width=200, color_system=None, highlight=False)

