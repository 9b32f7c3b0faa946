"""Ping session runner for hueping.

Contains run_session() which drives the probe loop, prints the summary and
returns an exit code based on the result.
"""

import logging
import os
import signal
import threading
import time
from collections.abc import Callable
from enum import Enum, IntEnum
from types import FrameType
from typing import Any

from rich.console import Console
from rich.text import Text

from probe.config import ProbeConfig
from probe.encoding import ConsistencyError
from probe.io import TransportError
from probe.render import render_rtt, report_line
from session.exchange import Outcome, exchange
from session.report import SessionReport
from session.result import SessionResult, SessionStats

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Exit codes for a ping session."""

    SUCCESS = 0  # At least one reply (or nothing sent)
    NO_REPLY = 1  # Every probe timed out
    CONFIG_ERROR = 2  # Bad flags or unresolvable destination
    TRANSPORT_ERROR = 3  # Raw socket could not be opened or used
    CONSISTENCY_ERROR = 4  # Reply for a probe that was never sent


class LoopState(Enum):
    """Lifecycle of a PingSession."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"  # Interrupt seen, current probe finished
    REPORTING = "reporting"
    TERMINATED = "terminated"


class CancellationToken:
    """Stop request shared between a signal handler and the ping loop."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def install_interrupt_handler(token: CancellationToken) -> Any:
    """Cancel token on SIGINT. Returns the previous handler."""

    def handler(_sig: int, _frame: FrameType | None) -> None:
        token.cancel()

    return signal.signal(signal.SIGINT, handler)


def generate_identifier() -> int:
    """Generate random 16-bit echo identifier."""
    return int.from_bytes(os.urandom(2), "big")


class PingSession:
    """Sends probes one at a time and folds each outcome into SessionStats.

    The loop checks the cancellation token only between probes: a probe in
    flight always completes or times out. Transport and consistency faults
    abort the loop; the summary is printed in every case.
    """

    def __init__(
        self,
        config: ProbeConfig,
        *,
        token: CancellationToken | None = None,
        exchange: Callable[..., Outcome] = exchange,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        identifier: int | None = None,
        out: Console | None = None,
    ) -> None:
        self.config = config
        self.token = token or CancellationToken()
        self.identifier = generate_identifier() if identifier is None else identifier
        self.state = LoopState.IDLE
        self._exchange = exchange
        self._clock = clock
        self._sleep = sleep
        self._out = out

    def run(self) -> SessionResult:
        """Run the probe loop to completion and print the summary."""
        cfg = self.config
        result = SessionResult(destination=cfg.destination)
        stats = result.stats

        self._set_state(LoopState.RUNNING)
        count_msg = "until interrupted" if cfg.count == 0 else f"{cfg.count} probes"
        logger.info(
            f"PING {cfg.destination}: {cfg.payload_size} data bytes, {count_msg} "
            f"(id={self.identifier})"
        )

        try:
            while not self.token.cancelled and (cfg.count == 0 or stats.sequence < cfg.count):
                cycle_start = self._clock()

                outcome = self._exchange(
                    cfg.destination,
                    cfg.timeout_s,
                    cfg.payload_size,
                    stats.sequence,
                    self.identifier,
                )
                self._record(stats, outcome)

                if self.token.cancelled:
                    self._set_state(LoopState.DRAINING)
                    logger.debug(f"Interrupted after seq={stats.sequence - 1}, finishing")
                    continue

                # Pace to at most one probe per interval
                elapsed = self._clock() - cycle_start
                if elapsed < cfg.interval_s:
                    self._sleep(cfg.interval_s - elapsed)

            if self.token.cancelled:
                self._set_state(LoopState.DRAINING)
        except TransportError as e:
            logger.critical(f"{e}")
            result.error = e
        except ConsistencyError as e:
            logger.critical(f"Internal consistency fault: {e}")
            result.error = e

        result.cancelled = self.token.cancelled
        self._set_state(LoopState.REPORTING)
        SessionReport(result=result).print(self._out)
        self._set_state(LoopState.TERMINATED)
        return result

    def _set_state(self, state: LoopState) -> None:
        if state is not self.state:
            logger.debug(f"Session state {self.state.value} -> {state.value}")
            self.state = state

    def _record(self, stats: SessionStats, outcome: Outcome) -> None:
        """Update stats with outcome and report the probe line."""
        dest = self.config.destination
        seq = stats.sequence

        if outcome.timed_out:
            stats.record_timeout()
            report_line(f"no answer from {dest} seq={seq}", self._out)
            return

        assert outcome.rtt_us is not None
        stats.record_success(outcome.rtt_us)
        report_line(
            Text.assemble(
                f"answer from {dest} seq={seq} rtt=",
                render_rtt(outcome.rtt_us),
                "ms",
            ),
            self._out,
        )


def exit_code_for(result: SessionResult) -> ExitCode:
    """Map a session result to a process exit code."""
    if isinstance(result.error, ConsistencyError):
        return ExitCode.CONSISTENCY_ERROR
    if result.error is not None:
        return ExitCode.TRANSPORT_ERROR
    if not result.success:
        return ExitCode.NO_REPLY
    return ExitCode.SUCCESS


def run_session(
    config: ProbeConfig,
    token: CancellationToken | None = None,
    out: Console | None = None,
) -> int:
    """Run a ping session with Ctrl-C handling. Returns exit code."""
    token = token or CancellationToken()
    previous = install_interrupt_handler(token)
    try:
        result = PingSession(config, token=token, out=out).run()
    finally:
        signal.signal(signal.SIGINT, previous)

    code = exit_code_for(result)
    if code == ExitCode.NO_REPLY:
        logger.error("no responses have been received")
    return code
