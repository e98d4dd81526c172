"""Terminal spinner shown while the host waits on the companion service."""

import itertools
import shutil
import sys
import threading
import time
from typing import TextIO

SPINNER_FRAMES = ("|", "/", "-", "\\")
SPINNER_INTERVAL_SECONDS = 0.1


class WaitIndicator:
    """Spinner plus elapsed seconds on one TTY line. Silent on non-terminals."""

    def __init__(
        self,
        message: str,
        stream: TextIO | None = None,
        interval: float = SPINNER_INTERVAL_SECONDS,
    ) -> None:
        self._message = message
        self._stream = stream if stream is not None else sys.stderr
        self._interval = interval
        self._done = threading.Event()
        self._thread: threading.Thread | None = None
        isatty = getattr(self._stream, "isatty", None)
        self._active = bool(isatty and isatty())

    def __enter__(self) -> "WaitIndicator":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        if not self._active or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._spin, daemon=True, name="p2plauncher-spinner")
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._done.set()
        self._thread.join(timeout=1)
        self._thread = None
        if self._active:
            self._emit("")

    def _spin(self) -> None:
        started = time.monotonic()
        for frame in itertools.cycle(SPINNER_FRAMES):
            if not self._active:
                return
            self._emit(f"{frame} {self._message} {time.monotonic() - started:.0f}s")
            if self._done.wait(self._interval):
                return

    def _emit(self, text: str) -> None:
        """Overwrite the current line; an empty text blanks it and parks the cursor."""
        width = max(shutil.get_terminal_size(fallback=(80, 24)).columns - 1, 10)
        line = "\r" + text[:width].ljust(width)
        if not text:
            line += "\r"
        try:
            self._stream.write(line)
            self._stream.flush()
        except OSError:
            self._active = False
