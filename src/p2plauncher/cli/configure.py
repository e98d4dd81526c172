"""`p2plauncher configure` command implementation."""

import argparse
import shlex
import sys

from p2plauncher.cli.shared import add_common_arguments, configure_logging
from p2plauncher.config import CONFIG_FILE, load_config, save_config
from p2plauncher.models import LauncherConfig, validate_executable_path


def build_parser() -> argparse.ArgumentParser:
    """Build parser for the configure command."""
    parser = argparse.ArgumentParser(
        prog="p2plauncher configure",
        description="Configure discovery, CPU pinning, and the default game",
    )
    add_common_arguments(parser)
    parser.add_argument("--discovery-url", help="Companion service discovery endpoint")
    parser.add_argument("--attempts", type=int, help="Discovery attempts before falling back")
    parser.add_argument("--retry-delay", type=float, help="Seconds between discovery attempts")
    parser.add_argument("--timeout", type=float, help="Seconds before one discovery request gives up")
    parser.add_argument("--cpu", type=int, help="Index of the CPU the game is pinned to")
    console_group = parser.add_mutually_exclusive_group()
    console_group.add_argument(
        "--show-console",
        action="store_true",
        help="Give the game its own console window (default, Windows only)",
    )
    console_group.add_argument(
        "--hide-console",
        action="store_true",
        help="Start the game without a console window (Windows only)",
    )
    parser.add_argument(
        "--launch-args",
        metavar="ARGS",
        help='Default game arguments as one string (example: --launch-args="-window")',
    )
    executable_group = parser.add_mutually_exclusive_group()
    executable_group.add_argument("--executable", help="Game launched when no path is given")
    executable_group.add_argument(
        "--clear-executable",
        action="store_true",
        help="Forget the default game",
    )
    parser.add_argument("--reset", action="store_true", help="Start from default settings")
    return parser


def _updates_from_args(args: argparse.Namespace) -> dict:
    updates: dict = {}
    if args.discovery_url is not None:
        updates["discovery_url"] = args.discovery_url
    if args.attempts is not None:
        updates["max_attempts"] = args.attempts
    if args.retry_delay is not None:
        updates["retry_delay_seconds"] = args.retry_delay
    if args.timeout is not None:
        updates["request_timeout_seconds"] = args.timeout
    if args.cpu is not None:
        updates["cpu_index"] = args.cpu
    if args.show_console:
        updates["show_console"] = True
    if args.hide_console:
        updates["show_console"] = False
    if args.launch_args is not None:
        updates["launch_arguments"] = shlex.split(args.launch_args)
    if args.executable is not None:
        updates["executable_path"] = validate_executable_path(args.executable)
    if args.clear_executable:
        updates["executable_path"] = None
    return updates


def run(argv: list[str]) -> int:
    """Execute the configure command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    existing = LauncherConfig() if args.reset else load_config()
    try:
        updates = _updates_from_args(args)
        updated = LauncherConfig.model_validate({**existing.model_dump(), **updates})
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        path = save_config(updated)
    except OSError as e:
        print(f"Error: could not write {CONFIG_FILE}: {e}", file=sys.stderr)
        return 1

    print(f"\nConfiguration saved to {path}")
    print(f"  discovery_url: {updated.discovery_url}")
    print(f"  attempts: {updated.max_attempts} every {updated.retry_delay_seconds:g}s")
    print(f"  request_timeout: {updated.request_timeout_seconds:g}s")
    print(f"  cpu_index: {updated.cpu_index}")
    print("  show_console: " + ("true" if updated.show_console else "false"))
    print(f"  launch_arguments: {shlex.join(updated.launch_arguments) or '(none)'}")
    print(f"  executable_path: {updated.executable_path or 'not set'}")
    print("")
    return 0
