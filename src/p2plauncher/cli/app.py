"""Top-level CLI router."""

import sys

from . import configure as configure_cmd
from . import discover as discover_cmd
from . import launch as launch_cmd

COMMANDS = {
    "configure": configure_cmd.run,
    "discover": discover_cmd.run,
    "launch": launch_cmd.run,
}


def main(argv: list[str] | None = None) -> int:
    """Route to a subcommand; a bare invocation launches the game."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] in COMMANDS:
        return COMMANDS[args[0]](args[1:])
    return launch_cmd.run(args)


def entrypoint() -> None:
    """Console script entrypoint."""
    raise SystemExit(main())
