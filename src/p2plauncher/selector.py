"""Terminal stand-in for the executable file dialog."""

import logging
import sys
from collections.abc import Callable
from typing import TextIO

from p2plauncher.errors import InvalidExecutableError
from p2plauncher.models import validate_executable_path

log = logging.getLogger(__name__)

FileSelector = Callable[[], str | None]


def prompt_for_executable(
    stream: TextIO | None = None,
    input_stream: TextIO | None = None,
) -> str | None:
    """Ask for an executable path. Returns None if the user gives up or the path is unusable."""
    stream = stream if stream is not None else sys.stderr
    input_stream = input_stream if input_stream is not None else sys.stdin
    print("Path to the game executable (empty to cancel): ", end="", file=stream, flush=True)
    answer = input_stream.readline().strip()
    if not answer:
        log.debug("file selection cancelled")
        return None
    try:
        return validate_executable_path(answer)
    except InvalidExecutableError as e:
        print(f"Error: {e}", file=stream)
        return None
