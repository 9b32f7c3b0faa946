"""Echo probe exchange for hueping.

Contains:
- OutcomeKind / Outcome: Result of one probe (reply or timeout)
- exchange: Send one echo request and wait for its reply
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from ipaddress import IPv4Address, IPv6Address

from probe.encoding import EchoFamily, EncodingError, Probe, family_for
from probe.io import open_channel
from probe.protocol import SEQUENCE_MODULUS, TRACE, Channel

logger = logging.getLogger(__name__)

NS_PER_S = 1_000_000_000
NS_PER_US = 1_000


class OutcomeKind(Enum):
    """How a probe ended."""

    SUCCESS = "success"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Outcome:
    """Result of a single echo exchange.

    rtt_us is set only for SUCCESS.
    """

    kind: OutcomeKind
    rtt_us: int | None = None

    @classmethod
    def success(cls, rtt_us: int) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, rtt_us)

    @classmethod
    def timeout(cls) -> "Outcome":
        return cls(OutcomeKind.TIMEOUT)

    @property
    def timed_out(self) -> bool:
        return self.kind is OutcomeKind.TIMEOUT


def exchange(
    destination: IPv4Address | IPv6Address,
    timeout_s: float,
    payload_size: int,
    sequence: int,
    identifier: int,
    *,
    open_channel: Callable[[EchoFamily], Channel] = open_channel,
    clock: Callable[[], int] = time.monotonic_ns,
) -> Outcome:
    """Send one echo request to destination and wait for the matching reply.

    The receive wait is bounded by a deadline fixed at send time: unrelated
    packets shorten the remaining wait instead of restarting it.

    Args:
        destination: Address to probe; its family selects ICMP or ICMPv6.
        timeout_s: Time to wait for the reply.
        payload_size: Echo payload bytes.
        sequence: Probe sequence number (wrapped to 16 bits on the wire).
        identifier: Session identifier.
        open_channel: Factory for the raw channel.
        clock: Monotonic clock in nanoseconds.

    Returns:
        Outcome.success with the RTT in microseconds, or Outcome.timeout.

    Raises:
        TransportError: If the channel cannot be opened, written or read.
        ConsistencyError: If a reply correlates to a probe not yet sent.
    """
    family = family_for(destination)
    probe = Probe(identifier=identifier, sequence=sequence % SEQUENCE_MODULUS)
    packet = family.build_request(probe.identifier, probe.sequence, payload_size)

    with open_channel(family) as channel:
        channel.send(packet, str(destination))
        sent_ns = clock()
        deadline_ns = sent_ns + int(timeout_s * NS_PER_S)

        while True:
            remaining_ns = deadline_ns - clock()
            if remaining_ns <= 0:
                return Outcome.timeout()

            data = channel.recv(remaining_ns / NS_PER_S)
            if data is None:
                return Outcome.timeout()

            try:
                reply = family.parse_reply(data)
            except EncodingError as e:
                logger.log(TRACE, f"Ignoring malformed packet: {e}")
                continue
            if reply is None:
                continue

            if family.matches(probe, reply):
                return Outcome.success((clock() - sent_ns) // NS_PER_US)

            logger.log(
                TRACE,
                f"Ignoring echo reply id={reply.identifier} seq={reply.sequence} "
                f"(awaiting id={probe.identifier} seq={probe.sequence})",
            )
