"""Tests for p2plauncher.launcher.SandboxLauncher using real processes."""

import logging
import os
import subprocess
import sys
import threading
import time
from unittest.mock import patch

import psutil
import pytest

from p2plauncher.launcher import SandboxLauncher, snapshot_children
from p2plauncher.models import (
    ALREADY_RUNNING,
    SHUTTING_DOWN,
    SPAWN_FAILED,
    LaunchRequest,
    ProcessState,
)

pytestmark = pytest.mark.skipif(os.name == "nt", reason="uses POSIX process semantics")

SPAWN_TWO_HELPERS = """
import subprocess, sys
pids = []
for _ in range(2):
    helper = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    pids.append(str(helper.pid))
with open(sys.argv[1], "w") as f:
    f.write(" ".join(pids))
"""


def _python_request(tmp_path, code: str, *args: str) -> LaunchRequest:
    return LaunchRequest(
        executable_path=sys.executable,
        working_directory=str(tmp_path),
        arguments=("-c", code, *args),
    )


def _is_gone(pid: int, grace: float = 5.0) -> bool:
    deadline = time.monotonic() + grace
    while time.monotonic() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        time.sleep(0.05)
    return False


@pytest.fixture
def launcher():
    sandbox = SandboxLauncher(poll_interval=0.05)
    yield sandbox
    sandbox.shutdown(timeout=10)


class TestLaunch:
    def test_natural_exit_succeeds(self, launcher, tmp_path):
        outcome = launcher.launch(_python_request(tmp_path, "pass"))
        assert outcome.ok
        assert outcome.pid is not None
        assert launcher.active is None

    def test_helpers_are_killed_after_main_process_exits(self, launcher, tmp_path):
        pid_file = tmp_path / "helpers.txt"
        outcome = launcher.launch(_python_request(tmp_path, SPAWN_TWO_HELPERS, str(pid_file)))

        assert outcome.ok
        helper_pids = [int(pid) for pid in pid_file.read_text().split()]
        assert len(helper_pids) == 2
        assert all(_is_gone(pid) for pid in helper_pids)
        assert len(snapshot_children(outcome.pid)) == 0

    def test_missing_executable_fails_and_frees_slot(self, launcher, tmp_path):
        missing = LaunchRequest.from_path(str(tmp_path / "no-such-game"))
        assert launcher.launch(missing).reason == SPAWN_FAILED
        assert launcher.active is None

        assert launcher.launch(_python_request(tmp_path, "pass")).ok

    def test_runs_in_executable_directory(self, launcher, tmp_path):
        out = tmp_path / "cwd.txt"
        code = f"import os; open({str(out)!r}, 'w').write(os.getcwd())"
        assert launcher.launch(_python_request(tmp_path, code)).ok
        assert os.path.samefile(out.read_text(), tmp_path)

    def test_output_is_captured_into_log(self, launcher, tmp_path, caplog):
        caplog.set_level(logging.INFO, logger="p2plauncher.launcher.output")
        code = "import sys; print('hello from game'); print('oops', file=sys.stderr)"
        assert launcher.launch(_python_request(tmp_path, code)).ok

        messages = [record.getMessage() for record in caplog.records]
        assert any("stdout] hello from game" in m for m in messages)
        assert any("stderr] oops" in m for m in messages)


class TestConcurrency:
    def test_second_launch_is_rejected_while_running(self, launcher, tmp_path):
        request = _python_request(tmp_path, "import time; time.sleep(30)")
        results = []

        def _launch():
            results.append(launcher.launch(request, wait=False))

        threads = [threading.Thread(target=_launch) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcome.ok for outcome in results) == [False, True]
        assert [o.reason for o in results if not o.ok] == [ALREADY_RUNNING]
        assert launcher.is_running

    def test_slot_is_free_after_session_finishes(self, launcher, tmp_path):
        assert launcher.launch(_python_request(tmp_path, "pass"), wait=False).ok
        assert launcher.wait(timeout=10)
        assert launcher.launch(_python_request(tmp_path, "pass")).ok


class TestShutdown:
    def test_shutdown_terminates_process_and_helpers(self, launcher, tmp_path):
        pid_file = tmp_path / "helpers.txt"
        code = SPAWN_TWO_HELPERS + "\nimport time\ntime.sleep(60)\n"
        outcome = launcher.launch(_python_request(tmp_path, code, str(pid_file)), wait=False)
        assert outcome.ok

        deadline = time.monotonic() + 10
        while not pid_file.exists() or len(pid_file.read_text().split()) < 2:
            assert time.monotonic() < deadline
            time.sleep(0.05)
        handle = launcher.active

        assert launcher.shutdown(timeout=10)
        assert handle.state is ProcessState.TERMINATED
        assert _is_gone(outcome.pid)
        assert all(_is_gone(int(pid)) for pid in pid_file.read_text().split())
        assert launcher.active is None

    def test_shutdown_when_idle_is_a_noop(self, launcher):
        assert launcher.shutdown(timeout=1)

    def test_launch_after_shutdown_is_refused(self, launcher, tmp_path):
        assert launcher.shutdown(timeout=1)
        outcome = launcher.launch(_python_request(tmp_path, "pass"))
        assert not outcome.ok
        assert outcome.reason == SHUTTING_DOWN

    def test_shutdown_during_start_kills_the_new_process(self, launcher, tmp_path):
        entered = threading.Event()
        release = threading.Event()
        real_popen = subprocess.Popen

        def slow_popen(*args, **kwargs):
            entered.set()
            release.wait(10)
            return real_popen(*args, **kwargs)

        outcomes = []
        stopped = []
        request = _python_request(tmp_path, "import time; time.sleep(60)")
        with patch.object(subprocess, "Popen", side_effect=slow_popen):
            starter = threading.Thread(target=lambda: outcomes.append(launcher.launch(request, wait=False)))
            starter.start()
            assert entered.wait(10)

            stopper = threading.Thread(target=lambda: stopped.append(launcher.shutdown(timeout=15)))
            stopper.start()
            time.sleep(0.2)
            assert stopper.is_alive()

            release.set()
            starter.join(timeout=10)
            stopper.join(timeout=20)

        assert stopped == [True]
        assert outcomes[0].ok
        assert _is_gone(outcomes[0].pid)
        assert launcher.active is None


class TestAffinity:
    def test_process_is_pinned_to_one_cpu(self, launcher, tmp_path):
        outcome = launcher.launch(_python_request(tmp_path, "import time; time.sleep(30)"), wait=False)
        handle = launcher.active
        assert handle is not None and handle.pid == outcome.pid
        assert handle.state is ProcessState.RUNNING
        if not hasattr(psutil.Process, "cpu_affinity"):
            assert handle.affinity_mask is None
            return
        assert handle.affinity_mask is not None
        assert bin(handle.affinity_mask).count("1") == 1
        cpu = handle.affinity_mask.bit_length() - 1
        assert psutil.Process(handle.pid).cpu_affinity() == [cpu]

    def test_refused_pin_does_not_fail_launch(self, launcher, tmp_path):
        with patch.object(SandboxLauncher, "_target_cpu", return_value=10_000):
            outcome = launcher.launch(_python_request(tmp_path, "pass"))
        assert outcome.ok
