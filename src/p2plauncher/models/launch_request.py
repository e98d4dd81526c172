"""Launch request model for the sandboxed launcher."""

import os
from collections.abc import Iterable
from dataclasses import dataclass

from p2plauncher.errors import InvalidExecutableError


def validate_executable_path(path: str) -> str:
    """Return the absolute form of path, or raise if it cannot be launched."""
    if not path or not path.strip():
        raise InvalidExecutableError("No executable path given")
    resolved = os.path.abspath(os.path.expanduser(path.strip()))
    if not os.path.exists(resolved):
        raise InvalidExecutableError(f"Executable not found: {resolved}")
    if not os.path.isfile(resolved):
        raise InvalidExecutableError(f"Not a regular file: {resolved}")
    if os.name != "nt" and not os.access(resolved, os.X_OK):
        raise InvalidExecutableError(f"File is not executable: {resolved}")
    return resolved


@dataclass(frozen=True)
class LaunchRequest:
    """What to start: an executable, its directory, and its arguments."""

    executable_path: str
    working_directory: str
    arguments: tuple[str, ...] = ()

    @classmethod
    def from_path(cls, path: str, arguments: Iterable[str] = ()) -> "LaunchRequest":
        """Build a request for an executable, running it from its own directory."""
        return cls(
            executable_path=path,
            working_directory=os.path.dirname(path) or os.curdir,
            arguments=tuple(arguments),
        )

    @property
    def argv(self) -> list[str]:
        return [self.executable_path, *self.arguments]
