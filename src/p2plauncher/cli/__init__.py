"""Command-line interface for p2plauncher."""

from p2plauncher.cli.app import entrypoint, main

__all__ = ["entrypoint", "main"]
