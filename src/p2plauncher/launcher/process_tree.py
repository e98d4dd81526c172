"""Find and kill the helper processes a launched executable leaves behind."""

import logging
import os
import signal
from collections.abc import Iterable
from dataclasses import dataclass

import psutil

from p2plauncher.errors import CleanupWarning

log = logging.getLogger(__name__)

# Helpers may spawn more helpers while we are killing them; give up after this.
MAX_CLEANUP_PASSES = 5
KILL_WAIT_SECONDS = 2.0


@dataclass(frozen=True)
class ProcessTreeSnapshot:
    """Children of one process, as seen in the process table at one moment."""

    parent_pid: int
    child_pids: tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.child_pids)

    def __iter__(self):
        return iter(self.child_pids)


def snapshot_children(parent_pid: int) -> ProcessTreeSnapshot:
    """Return processes whose parent pid is parent_pid.

    The parent does not need to exist any more; a vanished parent simply has
    no children.
    """
    child_pids: list[int] = []
    for proc in psutil.process_iter(["pid", "ppid"]):
        info = proc.info
        if info.get("ppid") == parent_pid and info.get("pid") != parent_pid:
            child_pids.append(info["pid"])
    return ProcessTreeSnapshot(parent_pid=parent_pid, child_pids=tuple(sorted(child_pids)))


def live_descendants(pid: int) -> list[psutil.Process]:
    """Return every process below pid, or [] if pid is gone or hidden from us."""
    try:
        return psutil.Process(pid).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def kill_process(proc: psutil.Process) -> None:
    """Force-kill one process, raising CleanupWarning if it cannot be killed."""
    try:
        proc.kill()
    except psutil.NoSuchProcess as e:
        raise CleanupWarning(f"process {proc.pid} already exited") from e
    except psutil.AccessDenied as e:
        raise CleanupWarning(f"not permitted to kill process {proc.pid}") from e


def kill_process_group(pgid: int) -> None:
    """SIGKILL a whole POSIX process group, if anything is left in it."""
    if pgid == os.getpgrp():
        log.error("refusing to kill our own process group %d", pgid)
        return
    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except PermissionError as e:
        log.warning("cannot kill process group %d: %s", pgid, e)
        return
    log.debug("sent SIGKILL to process group %d", pgid)


def terminate_tree(
    parent_pid: int,
    tracked: Iterable[psutil.Process] = (),
    process_group: int | None = None,
) -> list[int]:
    """Kill every process left behind by parent_pid. Returns the pids killed.

    Each pass takes a fresh snapshot of the process table, because helpers can
    spawn after the previous one. ``tracked`` holds descendants seen while the
    parent was alive; those were reparented when it died and no longer show up
    under parent_pid.
    """
    killed: list[int] = []
    pending = {proc.pid: proc for proc in tracked}

    for _ in range(MAX_CLEANUP_PASSES):
        targets = pending
        pending = {}
        for pid in snapshot_children(parent_pid):
            if pid in targets:
                continue
            try:
                targets[pid] = psutil.Process(pid)
            except psutil.NoSuchProcess:
                log.debug("child %d exited before cleanup reached it", pid)

        if process_group is not None:
            kill_process_group(process_group)
        if not targets:
            break

        for proc in targets.values():
            try:
                kill_process(proc)
            except CleanupWarning as e:
                log.info("cleanup: %s", e)
                continue
            log.info("terminated helper process %d", proc.pid)
            killed.append(proc.pid)
        psutil.wait_procs(list(targets.values()), timeout=KILL_WAIT_SECONDS)
    else:
        log.warning("process tree of %d still spawning after %d passes", parent_pid, MAX_CLEANUP_PASSES)

    return killed
