"""Run legacy games pinned to one CPU next to a companion P2P service."""

__version__ = "0.1.0"
