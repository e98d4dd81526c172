"""`p2plauncher launch` command implementation."""

import argparse
import asyncio
import logging
import shlex
import sys

from p2plauncher.cli.shared import add_common_arguments, configure_logging
from p2plauncher.config import load_config
from p2plauncher.host import LauncherHost

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="p2plauncher launch",
        description=(
            "Run a game pinned to one CPU and kill every helper process it leaves behind"
        ),
    )
    add_common_arguments(parser)
    parser.add_argument(
        "path",
        nargs="?",
        help="Game executable (default: configured executable, otherwise prompt)",
    )
    parser.add_argument(
        "--args",
        dest="game_args",
        metavar="ARGS",
        help='Arguments for the game, as one string (example: --args="-window -opengl")',
    )
    parser.add_argument(
        "--skip-discovery",
        action="store_true",
        help="Do not look for the companion service before launching",
    )
    return parser


async def _choose_and_launch(host: LauncherHost, path: str | None) -> int:
    if path is None:
        path = await host.bridge.select_executable_file()
    if path is None:
        print("Error: no executable selected", file=sys.stderr)
        return 1

    print(f"Launching {path} ...")
    if not await host.bridge.launch_in_sandbox(path):
        print(f"Error: could not launch {path}", file=sys.stderr)
        return 1
    print("Game exited; helper processes cleaned up.")
    return 0


def run(argv: list[str]) -> int:
    """Execute the launch command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    config = load_config()
    if args.game_args is not None:
        try:
            config = config.model_copy(update={"launch_arguments": shlex.split(args.game_args)})
        except ValueError as e:
            parser.error(f"--args: {e}")

    with LauncherHost(config) as host:
        host.install_signal_handlers()
        if not args.skip_discovery:
            service = host.start()
            print(f"Companion service: {service}")
        return asyncio.run(_choose_and_launch(host, args.path or config.executable_path))
