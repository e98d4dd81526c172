"""`p2plauncher discover` command implementation."""

import argparse
import logging

from p2plauncher.cli.shared import add_common_arguments, configure_logging
from p2plauncher.config import load_config
from p2plauncher.discovery import discover
from p2plauncher.models import RetryPolicy
from p2plauncher.wait_indicator import WaitIndicator

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="p2plauncher discover",
        description="Find the companion P2P service, falling back to 127.0.0.1:8080",
    )
    add_common_arguments(parser)
    parser.add_argument("--url", help="Discovery endpoint (default from config)")
    parser.add_argument("--attempts", type=int, help="Maximum number of attempts")
    parser.add_argument("--delay", type=float, help="Seconds to wait between attempts")
    parser.add_argument(
        "--json",
        action="store_true",
        help='Print {"ip": ..., "port": ...} instead of host:port',
    )
    return parser


def run(argv: list[str]) -> int:
    """Execute the discover command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    config = load_config()
    try:
        policy = RetryPolicy(
            max_attempts=args.attempts if args.attempts is not None else config.max_attempts,
            delay_between_attempts=(
                args.delay if args.delay is not None else config.retry_delay_seconds
            ),
        )
    except ValueError as e:
        parser.error(str(e))

    with WaitIndicator("Looking for companion service..."):
        result = discover(
            policy,
            args.url or config.discovery_url,
            request_timeout=config.request_timeout_seconds,
        )

    if args.json:
        print(result.model_dump_json(by_alias=True))
    else:
        print(result)
    return 0
