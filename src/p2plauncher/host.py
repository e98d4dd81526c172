"""The privileged host: owns the launcher and hands the UI a capability bridge."""

import logging
import signal

from p2plauncher.bridge import CapabilityBridge
from p2plauncher.config import load_config
from p2plauncher.discovery import discover
from p2plauncher.launcher import SandboxLauncher
from p2plauncher.models import DiscoveryResult, LauncherConfig
from p2plauncher.peer import PeerClient, PeerModule
from p2plauncher.selector import FileSelector, prompt_for_executable

log = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10.0


class LauncherHost:
    def __init__(
        self,
        config: LauncherConfig | None = None,
        selector: FileSelector = prompt_for_executable,
        peer_module: PeerModule | None = None,
    ) -> None:
        self.config = config if config is not None else load_config()
        self.launcher = SandboxLauncher(
            cpu_index=self.config.cpu_index,
            show_console=self.config.show_console,
        )
        self.bridge = CapabilityBridge(self.launcher, self.config, selector)
        self.peer = PeerClient(peer_module) if peer_module is not None else None
        self.service: DiscoveryResult | None = None
        self._closed = False

    def start(self) -> DiscoveryResult:
        """Locate the companion service. Always yields an address."""
        self.service = discover(
            self.config.retry_policy(),
            self.config.discovery_url,
            request_timeout=self.config.request_timeout_seconds,
        )
        return self.service

    def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Stop any running game and its helpers. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if not self.launcher.shutdown(timeout):
            log.warning("process tree still being cleaned up after %.0fs", timeout)

    def install_signal_handlers(self) -> None:
        """Make SIGINT/SIGTERM run the same cleanup as a normal exit."""

        def _on_signal(signum, _frame):
            log.info("received signal %d, shutting down", signum)
            self.shutdown()

        signal.signal(signal.SIGINT, _on_signal)
        signal.signal(signal.SIGTERM, _on_signal)

    def __enter__(self) -> "LauncherHost":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
