"""Configuration model for p2plauncher."""

from pydantic import BaseModel, Field

from p2plauncher.models.discovery import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    RetryPolicy,
)

DEFAULT_DISCOVERY_URL = "http://localhost:8080/server-info"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 1.5
# Arguments Warcraft III needs to start windowed and straight into game creation.
DEFAULT_LAUNCH_ARGUMENTS = ["-window", "-nativefullscr", "-creategame"]


class LauncherConfig(BaseModel):
    """Runtime configuration for p2plauncher."""

    discovery_url: str = DEFAULT_DISCOVERY_URL
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    retry_delay_seconds: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=0)
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)
    cpu_index: int = Field(default=0, ge=0)
    show_console: bool = True
    launch_arguments: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGUMENTS))
    executable_path: str | None = None

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            delay_between_attempts=self.retry_delay_seconds,
        )
