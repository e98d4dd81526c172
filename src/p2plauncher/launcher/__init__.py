"""Sandboxed process launcher."""

from p2plauncher.launcher.process_tree import (
    ProcessTreeSnapshot,
    snapshot_children,
    terminate_tree,
)
from p2plauncher.launcher.sandbox import SandboxLauncher

__all__ = [
    "ProcessTreeSnapshot",
    "SandboxLauncher",
    "snapshot_children",
    "terminate_tree",
]
