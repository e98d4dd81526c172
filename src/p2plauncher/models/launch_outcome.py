"""Result of a launch request."""

from dataclasses import dataclass

SPAWN_FAILED = "spawn-failed"
ALREADY_RUNNING = "already-running"
SHUTTING_DOWN = "shutting-down"


@dataclass(frozen=True)
class LaunchOutcome:
    ok: bool
    reason: str | None = None
    pid: int | None = None

    @classmethod
    def success(cls, pid: int) -> "LaunchOutcome":
        return cls(ok=True, pid=pid)

    @classmethod
    def failure(cls, reason: str) -> "LaunchOutcome":
        return cls(ok=False, reason=reason)

    def __bool__(self) -> bool:
        return self.ok
