"""Unit tests for the raw socket channel."""

import errno
import socket
from collections.abc import Iterator

import pytest

from probe.encoding import ICMP_V4, ICMP_V6
from probe.io import RawSocketChannel, TransportError, open_channel


class FakeSocket:
    """Socket stand-in recording sendto calls."""

    def __init__(self, send_error: OSError | None = None) -> None:
        self.send_error = send_error
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.close_calls = 0

    def sendto(self, packet: bytes, address: tuple[str, int]) -> int:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((packet, address))
        return len(packet)

    def fileno(self) -> int:
        return -1 if self.close_calls else 3

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def udp_pair() -> Iterator[tuple[socket.socket, socket.socket]]:
    """Receiving and sending UDP sockets on loopback."""
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    yield receiver, sender
    receiver.close()
    sender.close()


@pytest.mark.unit
class TestOpenChannel:
    """Tests for open_channel()."""

    def test_permission_denied(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def deny(*args, **kwargs):
            raise PermissionError(errno.EPERM, "Operation not permitted")

        monkeypatch.setattr(socket, "socket", deny)
        with pytest.raises(TransportError, match="CAP_NET_RAW"):
            open_channel(ICMP_V4)

    def test_other_os_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(*args, **kwargs):
            raise OSError(errno.EAFNOSUPPORT, "Address family not supported by protocol")

        monkeypatch.setattr(socket, "socket", fail)
        with pytest.raises(TransportError, match="Failed to open raw icmpv6 socket"):
            open_channel(ICMP_V6)

    def test_opens_raw_socket_for_family(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[tuple] = []
        fake = FakeSocket()

        def create(*args):
            calls.append(args)
            return fake

        monkeypatch.setattr(socket, "socket", create)
        channel = open_channel(ICMP_V6)

        assert isinstance(channel, RawSocketChannel)
        assert channel.family is ICMP_V6
        assert calls == [(socket.AF_INET6, socket.SOCK_RAW, socket.IPPROTO_ICMPV6)]


@pytest.mark.unit
class TestRawSocketChannel:
    """Tests for RawSocketChannel send/recv/close."""

    def test_send_to_address(self) -> None:
        fake = FakeSocket()
        channel = RawSocketChannel(fake, ICMP_V4)

        assert channel.send(b"\x08\x00echo", "192.0.2.1") == 6
        assert fake.sent == [(b"\x08\x00echo", ("192.0.2.1", 0))]

    def test_send_error_wrapped(self) -> None:
        fake = FakeSocket(send_error=OSError(errno.ENETUNREACH, "Network is unreachable"))
        channel = RawSocketChannel(fake, ICMP_V4)

        with pytest.raises(TransportError, match="Network is unreachable"):
            channel.send(b"\x08\x00", "192.0.2.1")

    def test_recv_times_out(self, udp_pair) -> None:
        receiver, _ = udp_pair
        channel = RawSocketChannel(receiver, ICMP_V4)
        assert channel.recv(0.05) is None

    def test_recv_negative_timeout_polls(self, udp_pair) -> None:
        receiver, _ = udp_pair
        channel = RawSocketChannel(receiver, ICMP_V4)
        assert channel.recv(-1.0) is None

    def test_recv_returns_data(self, udp_pair) -> None:
        receiver, sender = udp_pair
        channel = RawSocketChannel(receiver, ICMP_V4)

        sender.sendto(b"echo reply", receiver.getsockname())

        assert channel.recv(2.0) == b"echo reply"

    def test_close_is_idempotent(self, udp_pair) -> None:
        receiver, _ = udp_pair
        channel = RawSocketChannel(receiver, ICMP_V4)

        channel.close()
        channel.close()

        assert receiver.fileno() == -1

    def test_context_manager_closes(self) -> None:
        fake = FakeSocket()
        with RawSocketChannel(fake, ICMP_V4) as channel:
            channel.send(b"\x08\x00", "192.0.2.1")
        assert fake.close_calls == 1

    def test_context_manager_closes_on_error(self) -> None:
        fake = FakeSocket(send_error=OSError(errno.EHOSTUNREACH, "No route to host"))
        with pytest.raises(TransportError):
            with RawSocketChannel(fake, ICMP_V4) as channel:
                channel.send(b"\x08\x00", "192.0.2.1")
        assert fake.close_calls == 1
