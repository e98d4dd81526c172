"""Model package for p2plauncher."""

from p2plauncher.models.discovery import FALLBACK_RESULT, DiscoveryResult, RetryPolicy
from p2plauncher.models.launch_outcome import (
    ALREADY_RUNNING,
    SHUTTING_DOWN,
    SPAWN_FAILED,
    LaunchOutcome,
)
from p2plauncher.models.launch_request import LaunchRequest, validate_executable_path
from p2plauncher.models.launcher_config import (
    DEFAULT_DISCOVERY_URL,
    DEFAULT_LAUNCH_ARGUMENTS,
    LauncherConfig,
)
from p2plauncher.models.peer_info import ConnectResult, PeerInfo
from p2plauncher.models.process_handle import ProcessHandle, ProcessState

__all__ = [
    "ALREADY_RUNNING",
    "ConnectResult",
    "DEFAULT_DISCOVERY_URL",
    "DEFAULT_LAUNCH_ARGUMENTS",
    "DiscoveryResult",
    "FALLBACK_RESULT",
    "LaunchOutcome",
    "LaunchRequest",
    "LauncherConfig",
    "PeerInfo",
    "ProcessHandle",
    "ProcessState",
    "RetryPolicy",
    "SHUTTING_DOWN",
    "SPAWN_FAILED",
    "validate_executable_path",
]
