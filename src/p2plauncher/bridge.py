"""The narrow set of operations an unprivileged UI may ask the host for.

Every capability is a coroutine that does its blocking work in a worker
thread, and none of them ever raises: internal errors are logged and turned
into the capability's failure value.
"""

import asyncio
import logging
from typing import Any

from p2plauncher.discovery import discover_async
from p2plauncher.errors import InvalidExecutableError
from p2plauncher.launcher import SandboxLauncher
from p2plauncher.models import (
    FALLBACK_RESULT,
    DiscoveryResult,
    LaunchRequest,
    LauncherConfig,
    validate_executable_path,
)
from p2plauncher.selector import FileSelector, prompt_for_executable

log = logging.getLogger(__name__)

# channel name -> (method name, value returned when the call fails)
CAPABILITIES: dict[str, tuple[str, Any]] = {
    "select-file": ("select_executable_file", None),
    "launch-in-sandbox": ("launch_in_sandbox", False),
    "server-info": ("discover_service", FALLBACK_RESULT),
}


class CapabilityBridge:
    def __init__(
        self,
        launcher: SandboxLauncher,
        config: LauncherConfig,
        selector: FileSelector = prompt_for_executable,
    ) -> None:
        self._launcher = launcher
        self._config = config
        self._selector = selector

    async def select_executable_file(self) -> str | None:
        """Ask the user for an executable; None on cancel or an unusable path."""
        try:
            path = await asyncio.to_thread(self._selector)
            if path is None:
                return None
            return validate_executable_path(path)
        except InvalidExecutableError as e:
            log.warning("select-file: %s", e)
        except Exception:
            log.exception("select-file failed")
        return None

    async def launch_in_sandbox(self, path: str) -> bool:
        """Run the executable at path until it exits. False if it could not start."""
        try:
            request = LaunchRequest.from_path(
                validate_executable_path(path),
                self._config.launch_arguments,
            )
            outcome = await asyncio.to_thread(self._launcher.launch, request)
        except InvalidExecutableError as e:
            log.warning("launch-in-sandbox: %s", e)
            return False
        except Exception:
            log.exception("launch-in-sandbox failed for %r", path)
            return False
        if not outcome.ok:
            log.warning("launch-in-sandbox: %s", outcome.reason)
        return outcome.ok

    async def discover_service(self) -> DiscoveryResult:
        try:
            return await discover_async(
                self._config.retry_policy(),
                self._config.discovery_url,
                request_timeout=self._config.request_timeout_seconds,
            )
        except Exception:
            log.exception("server-info failed")
            return FALLBACK_RESULT

    async def invoke(self, channel: str, *args: Any) -> Any:
        """Dispatch a call by channel name, as a UI process would send it."""
        if channel not in CAPABILITIES:
            log.error("refusing call to unknown channel %r", channel)
            return None
        method_name, failure_value = CAPABILITIES[channel]
        try:
            return await getattr(self, method_name)(*args)
        except TypeError:
            log.exception("bad arguments for channel %r", channel)
            return failure_value
