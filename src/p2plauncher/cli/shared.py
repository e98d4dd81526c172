"""Helpers shared by the CLI subcommands."""

import argparse
import logging

from p2plauncher import __version__


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"p2plauncher {__version__}",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )
