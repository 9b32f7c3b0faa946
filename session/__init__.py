"""Ping session package for hueping.

This package handles the probe loop once the destination is known:
- One echo exchange per sequence number, single probe in flight
- RTT (round-trip time) measurement
- Statistics tracking (transmitted, received, min/max/avg, loss)
- Cooperative cancellation via Ctrl-C

Note: run_session and ExitCode live in session.runner.
"""

from session.exchange import Outcome, OutcomeKind, exchange
from session.report import SessionReport
from session.result import SessionResult, SessionStats

__all__ = [
    "Outcome",
    "OutcomeKind",
    "SessionReport",
    "SessionResult",
    "SessionStats",
    "exchange",
]
