"""Process handle model owned by the launcher."""

import enum
from dataclasses import dataclass


class ProcessState(enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    TERMINATED = "terminated"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessState.EXITED, ProcessState.TERMINATED)


@dataclass
class ProcessHandle:
    """One launched OS process and the CPU it is pinned to."""

    pid: int
    affinity_mask: int | None = None
    state: ProcessState = ProcessState.STARTING
    returncode: int | None = None
