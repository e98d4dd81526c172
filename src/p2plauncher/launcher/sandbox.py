"""Start an executable pinned to one CPU and clean up its whole process tree."""

import logging
import os
import subprocess
import threading
from typing import IO

import psutil

from p2plauncher.errors import AlreadyRunningError, LauncherStoppedError, SpawnError
from p2plauncher.launcher.process_tree import live_descendants, terminate_tree
from p2plauncher.models import (
    ALREADY_RUNNING,
    SHUTTING_DOWN,
    SPAWN_FAILED,
    LaunchOutcome,
    LaunchRequest,
    ProcessHandle,
    ProcessState,
)

log = logging.getLogger(__name__)
output_log = logging.getLogger("p2plauncher.launcher.output")

POLL_INTERVAL_SECONDS = 0.25
READER_JOIN_SECONDS = 2.0


class _LaunchSession:
    """Everything the launcher knows about one running executable."""

    def __init__(self, request: LaunchRequest, popen: subprocess.Popen, handle: ProcessHandle):
        self.request = request
        self.popen = popen
        self.handle = handle
        self.tracked: dict[int, psutil.Process] = {}
        self.forced = False
        self.done = threading.Event()
        self.readers: list[threading.Thread] = []
        self.watcher: threading.Thread | None = None

    def track_descendants(self) -> None:
        for proc in live_descendants(self.handle.pid):
            self.tracked.setdefault(proc.pid, proc)


def _drain(stream: IO[bytes], name: str, pid: int) -> None:
    """Forward captured output to the log, one line at a time."""
    try:
        for raw in iter(stream.readline, b""):
            line = raw.decode(errors="replace").rstrip()
            if line:
                output_log.info("[%d %s] %s", pid, name, line)
    except (OSError, ValueError) as e:
        log.debug("stopped reading %s of %d: %s", name, pid, e)
    finally:
        stream.close()


class SandboxLauncher:
    """Runs one executable at a time, pinned to a single CPU.

    The only shared state is the current session, guarded by ``_lock``: it is
    claimed before the process starts and released after descendant cleanup
    finishes, so a second launch can never slip in between. Once shutdown()
    has been called the launcher refuses new launches for good.
    """

    def __init__(
        self,
        cpu_index: int = 0,
        show_console: bool = True,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._cpu_index = cpu_index
        self._show_console = show_console
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._claimed = False
        self._stopping = False
        self._session: _LaunchSession | None = None
        # Set whenever no launch holds the slot.
        self._idle = threading.Event()
        self._idle.set()

    @property
    def active(self) -> ProcessHandle | None:
        """Handle of the current launch, or None when idle."""
        with self._lock:
            return self._session.handle if self._session is not None else None

    @property
    def is_running(self) -> bool:
        handle = self.active
        return handle is not None and handle.state is ProcessState.RUNNING

    def launch(self, request: LaunchRequest, *, wait: bool = True) -> LaunchOutcome:
        """Start request and, if wait is set, block until it and its helpers are gone."""
        try:
            self._claim()
        except AlreadyRunningError as e:
            log.warning("refusing to launch %s: %s", request.executable_path, e)
            return LaunchOutcome.failure(ALREADY_RUNNING)
        except LauncherStoppedError as e:
            log.warning("refusing to launch %s: %s", request.executable_path, e)
            return LaunchOutcome.failure(SHUTTING_DOWN)

        try:
            session = self._start(request)
        except SpawnError as e:
            log.error("could not start %s: %s", request.executable_path, e)
            self._release(None)
            return LaunchOutcome.failure(SPAWN_FAILED)

        if wait:
            session.done.wait()
        return LaunchOutcome.success(session.handle.pid)

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the current session to finish cleanup. True if idle afterwards."""
        with self._lock:
            session = self._session
        if session is None:
            return True
        return session.done.wait(timeout)

    def shutdown(self, timeout: float | None = None) -> bool:
        """Refuse further launches, kill the running executable and wait for cleanup.

        A launch that is still starting is killed as soon as its process
        exists. Returns True once the launcher is idle.
        """
        with self._lock:
            self._stopping = True
            session = self._session
        if session is not None:
            self._kill(session)
        return self._idle.wait(timeout)

    def _kill(self, session: _LaunchSession) -> None:
        log.info("stopping process %d", session.handle.pid)
        session.forced = True
        try:
            session.popen.kill()
        except OSError as e:
            log.debug("kill of %d failed: %s", session.handle.pid, e)

    def _claim(self) -> None:
        with self._lock:
            if self._stopping:
                raise LauncherStoppedError("launcher is shutting down")
            if self._claimed:
                if self._session is not None:
                    raise AlreadyRunningError(f"process {self._session.handle.pid} is still running")
                raise AlreadyRunningError("another launch is starting")
            self._claimed = True
            self._idle.clear()

    def _release(self, session: _LaunchSession | None) -> None:
        with self._lock:
            if self._session is session:
                self._session = None
                self._claimed = False
                self._idle.set()

    def _popen_kwargs(self) -> dict:
        kwargs: dict = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.PIPE,
        }
        if os.name == "nt":
            flags = subprocess.CREATE_NEW_PROCESS_GROUP
            flags |= subprocess.CREATE_NEW_CONSOLE if self._show_console else subprocess.CREATE_NO_WINDOW
            kwargs["creationflags"] = flags
        else:
            # Own session and process group, so the whole tree can be killed at once.
            kwargs["start_new_session"] = True
        return kwargs

    def _start(self, request: LaunchRequest) -> _LaunchSession:
        log.info("starting %s in %s", request.executable_path, request.working_directory)
        log.debug("argv=%s", request.argv)
        try:
            popen = subprocess.Popen(
                request.argv,
                cwd=request.working_directory,
                **self._popen_kwargs(),
            )
        except (OSError, ValueError) as e:
            raise SpawnError(str(e)) from e

        handle = ProcessHandle(pid=popen.pid)
        handle.affinity_mask = self._pin_to_cpu(popen.pid)
        handle.state = ProcessState.RUNNING
        session = _LaunchSession(request, popen, handle)
        with self._lock:
            self._session = session
            stopping = self._stopping

        for stream, name in ((popen.stdout, "stdout"), (popen.stderr, "stderr")):
            reader = threading.Thread(
                target=_drain,
                args=(stream, name, popen.pid),
                daemon=True,
                name=f"p2plauncher-{name}-{popen.pid}",
            )
            reader.start()
            session.readers.append(reader)

        session.watcher = threading.Thread(
            target=self._watch,
            args=(session,),
            daemon=True,
            name=f"p2plauncher-watch-{popen.pid}",
        )
        session.watcher.start()
        if stopping:
            self._kill(session)
        else:
            log.info("process %d running (affinity mask %s)", handle.pid, handle.affinity_mask)
        return session

    def _target_cpu(self) -> int:
        try:
            allowed = psutil.Process().cpu_affinity()
        except (AttributeError, psutil.Error, OSError):
            allowed = list(range(psutil.cpu_count() or 1))
        if not allowed:
            return 0
        return allowed[min(self._cpu_index, len(allowed) - 1)]

    def _pin_to_cpu(self, pid: int) -> int | None:
        """Restrict pid to one CPU. Returns the affinity mask, or None if refused."""
        cpu = self._target_cpu()
        try:
            psutil.Process(pid).cpu_affinity([cpu])
        except AttributeError:
            log.warning("CPU affinity is not supported on this platform")
            return None
        except (psutil.Error, OSError, ValueError) as e:
            log.warning("could not pin process %d to CPU %d: %s", pid, cpu, e)
            return None
        return 1 << cpu

    def _wait_for_exit(self, session: _LaunchSession) -> int:
        while True:
            try:
                return session.popen.wait(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                session.track_descendants()

    def _watch(self, session: _LaunchSession) -> None:
        handle = session.handle
        try:
            handle.returncode = self._wait_for_exit(session)
            handle.state = ProcessState.TERMINATED if session.forced else ProcessState.EXITED
            log.info("process %d %s with code %s", handle.pid, handle.state.value, handle.returncode)
            self._cleanup(session)
        finally:
            self._release(session)
            session.done.set()

    def _cleanup(self, session: _LaunchSession) -> None:
        pid = session.handle.pid
        try:
            killed = terminate_tree(
                pid,
                tracked=session.tracked.values(),
                process_group=pid if os.name != "nt" else None,
            )
        except psutil.Error as e:
            log.warning("cleanup of process tree %d incomplete: %s", pid, e)
        else:
            if killed:
                log.info("cleaned up %d helper process(es) of %d", len(killed), pid)
            else:
                log.debug("process %d left no helpers behind", pid)
        for reader in session.readers:
            reader.join(timeout=READER_JOIN_SECONDS)
