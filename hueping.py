#!/usr/bin/env python3
"""A prettier ping: ICMP/ICMPv6 echo latency with coloured round-trip times."""

import argparse
import logging
import sys

from rich.logging import RichHandler

from probe.config import ConfigError, build_config
from probe.protocol import (
    DEFAULT_COUNT,
    DEFAULT_INTERVAL_S,
    DEFAULT_PAYLOAD_SIZE,
    DEFAULT_TIMEOUT_S,
    TRACE,
    UNRESTRICTED_ENV,
    unrestricted_from_env,
)
from probe.render import console
from probe.resolve import ResolutionError
from session.runner import ExitCode, run_session

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    level = {0: logging.INFO, 1: logging.DEBUG}.get(verbosity, TRACE)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hueping",
        description="A prettier ping utility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s 1.1.1.1                 Ping until Ctrl-C
  %(prog)s -c 4 example.com        Send 4 probes
  %(prog)s -i 0.5 -W 1 ::1         Faster pacing, 1s reply timeout

Intervals below 200ms require root, --unrestricted or {UNRESTRICTED_ENV}=1.
""",
    )
    parser.add_argument("destination", metavar="DESTINATION", help="dns name or ip address")
    parser.add_argument(
        "-c",
        "--count",
        type=int,
        default=DEFAULT_COUNT,
        help=f"stop after <count> probes, 0 = until interrupted (default: {DEFAULT_COUNT})",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=DEFAULT_INTERVAL_S,
        help=f"seconds between sending each packet (default: {DEFAULT_INTERVAL_S})",
    )
    parser.add_argument(
        "-W",
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_S,
        help=f"seconds to wait for each response (default: {DEFAULT_TIMEOUT_S})",
    )
    parser.add_argument(
        "-s",
        "--size",
        type=int,
        default=DEFAULT_PAYLOAD_SIZE,
        help=f"echo payload bytes (default: {DEFAULT_PAYLOAD_SIZE})",
    )
    parser.add_argument(
        "--unrestricted",
        action="store_true",
        default=unrestricted_from_env(),
        help="allow intervals below 200ms without root",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase log verbosity (-v debug, -vv packet trace)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = build_config(
            args.destination,
            count=args.count,
            interval_s=args.interval,
            timeout_s=args.timeout,
            payload_size=args.size,
            unrestricted=args.unrestricted,
        )
    except (ConfigError, ResolutionError) as e:
        logger.critical(f"{e}")
        return ExitCode.CONFIG_ERROR

    return run_session(config)


if __name__ == "__main__":
    sys.exit(main())
