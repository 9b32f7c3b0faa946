"""Session result types for hueping.

Contains:
- SessionStats: Running counters and RTT aggregates for a ping session
- SessionResult: Final stats plus any fatal error
"""

from dataclasses import dataclass, field
from ipaddress import IPv4Address, IPv6Address


@dataclass
class SessionStats:
    """Running statistics, updated once per completed probe.

    All durations are integer microseconds.

    Attributes:
        transmitted: Probes sent, answered or not.
        received: Probes answered before their timeout.
        min_rtt_us: Fastest reply, None until the first reply.
        max_rtt_us: Slowest reply, None until the first reply.
        total_rtt_us: Sum of all reply RTTs.
        sequence: Sequence number of the next probe.
    """

    transmitted: int = 0
    received: int = 0
    min_rtt_us: int | None = None
    max_rtt_us: int | None = None
    total_rtt_us: int = 0
    sequence: int = 0

    def record_success(self, rtt_us: int) -> None:
        """Fold a reply into the stats and advance the sequence."""
        if self.min_rtt_us is None or rtt_us < self.min_rtt_us:
            self.min_rtt_us = rtt_us
        if self.max_rtt_us is None or rtt_us > self.max_rtt_us:
            self.max_rtt_us = rtt_us
        self.total_rtt_us += rtt_us
        self.received += 1
        self.transmitted += 1
        self.sequence += 1

    def record_timeout(self) -> None:
        """Count an unanswered probe and advance the sequence."""
        self.transmitted += 1
        self.sequence += 1

    @property
    def loss_percent(self) -> float:
        """Return loss as percentage (0-100); 100 when nothing was sent."""
        if self.transmitted == 0:
            return 100.0
        return (self.transmitted - self.received) / self.transmitted * 100

    @property
    def avg_rtt_us(self) -> int:
        """Return total RTT over probes sent, truncated to whole microseconds.

        Timed-out probes count in the divisor.
        """
        if self.sequence == 0:
            return 0
        return self.total_rtt_us // self.sequence

    @property
    def reported_min_us(self) -> int:
        return self.min_rtt_us if self.min_rtt_us is not None else 0

    @property
    def reported_max_us(self) -> int:
        return self.max_rtt_us if self.max_rtt_us is not None else 0


@dataclass
class SessionResult:
    """Result from a ping session.

    Attributes:
        destination: Address that was probed.
        stats: Final statistics (read-only once the loop has exited).
        error: TransportError or ConsistencyError if the session was aborted.
        cancelled: True if the session was stopped by an interrupt.
    """

    destination: IPv4Address | IPv6Address
    stats: SessionStats = field(default_factory=SessionStats)
    error: Exception | None = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        """Return True unless aborted or every probe went unanswered."""
        if self.error is not None:
            return False
        return not (self.stats.transmitted > 0 and self.stats.received == 0)
