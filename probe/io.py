"""Raw socket I/O for hueping.

Contains:
- TransportError: Raised when the raw channel cannot be opened or used
- RawSocketChannel: One raw ICMP/ICMPv6 socket with bounded receive waits
- open_channel: Open a channel for an echo family
"""

import logging
import select
import socket

from probe.encoding import EchoFamily
from probe.protocol import TRACE

logger = logging.getLogger(__name__)

# Large enough for any ICMP message plus an IPv4 header
RECV_BUFFER_SIZE = 65535


class TransportError(Exception):
    """Raised when the raw channel cannot be opened, written or read."""

    pass


class RawSocketChannel:
    """Raw socket for one echo family.

    Use as a context manager so the socket is released on every path.
    """

    def __init__(self, sock: socket.socket, family: EchoFamily) -> None:
        self._sock = sock
        self.family = family

    def send(self, packet: bytes, address: str, /) -> int:
        """Send packet to address. Returns bytes written."""
        try:
            written = self._sock.sendto(packet, (address, 0))
        except OSError as e:
            raise TransportError(f"Failed to send {self.family.name} echo to {address}: {e}") from e
        logger.log(TRACE, f"Sent {written} bytes to {address}")
        return written

    def recv(self, timeout_s: float, /) -> bytes | None:
        """Wait at most timeout_s for the next packet.

        Returns None if nothing arrived in time.
        """
        try:
            readable, _, _ = select.select([self._sock], [], [], max(0.0, timeout_s))
            if not readable:
                return None
            data, addr = self._sock.recvfrom(RECV_BUFFER_SIZE)
        except OSError as e:
            raise TransportError(f"Failed to receive on {self.family.name} socket: {e}") from e
        logger.log(TRACE, f"Received {len(data)} bytes from {addr[0]}")
        return data

    def close(self) -> None:
        if self._sock.fileno() != -1:
            self._sock.close()

    def __enter__(self) -> "RawSocketChannel":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_channel(family: EchoFamily) -> RawSocketChannel:
    """Open a raw socket for family.

    Raises:
        TransportError: If the socket cannot be created (e.g. no CAP_NET_RAW).
    """
    try:
        sock = socket.socket(family.socket_family, socket.SOCK_RAW, family.protocol)
    except PermissionError as e:
        raise TransportError(
            f"Permission denied opening raw {family.name} socket "
            "(run as root or grant CAP_NET_RAW)"
        ) from e
    except OSError as e:
        raise TransportError(f"Failed to open raw {family.name} socket: {e}") from e
    return RawSocketChannel(sock, family)
