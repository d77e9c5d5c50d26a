"""Tests for program lookup and child process execution."""

from __future__ import annotations

import os
import signal
import stat
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from texdrive.process import (
    ProcessCallbacks,
    ProcessOptions,
    ProcessSupervisor,
    find_program,
    run_program,
)

PYTHON = Path(sys.executable)


@pytest.mark.skipif(sys.platform.startswith("win"), reason="executable bit lookup")
def test_find_program(tmp_path: Path) -> None:
    tool = tmp_path / "texi2dvi"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR)

    assert find_program("texi2dvi", search_path=str(tmp_path)) == tool.resolve()


def test_find_program_missing(tmp_path: Path) -> None:
    assert find_program("texi2dvi", search_path=str(tmp_path)) is None


def test_run_program_captures_output() -> None:
    result, diagnostic = run_program(
        PYTHON,
        ["-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"],
    )

    assert diagnostic is None
    assert result.exit_status == 3
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


def test_run_program_missing_binary(tmp_path: Path) -> None:
    result, diagnostic = run_program(tmp_path / "missing", ["--version"])

    assert diagnostic is not None
    assert diagnostic.code == "process-error"
    assert diagnostic.file is not None and diagnostic.file.endswith("process.py")
    assert result.exit_status == -1


def test_supervisor_streams_lines(tmp_path: Path) -> None:
    stdout: list[str] = []
    stderr: list[str] = []
    exited = threading.Event()
    statuses: list[int] = []

    def on_exit(status: int) -> None:
        statuses.append(status)
        exited.set()

    script = (
        "import os, sys\n"
        "print(os.environ['TEXDRIVE_TEST'])\n"
        "print(os.getcwd())\n"
        "print('warning', file=sys.stderr)\n"
    )
    supervisor = ProcessSupervisor()
    child, diagnostic = supervisor.run_program(
        PYTHON,
        ["-c", script],
        ProcessOptions(
            environment={**os.environ, "TEXDRIVE_TEST": "yes"},
            working_dir=tmp_path,
            terminate_children=True,
        ),
        ProcessCallbacks(on_stdout=stdout.append, on_stderr=stderr.append, on_exit=on_exit),
    )

    assert diagnostic is None
    assert child.wait(timeout=30) == 0
    assert exited.is_set()
    assert statuses == [0]
    assert stdout[0] == "yes\n"
    assert Path(stdout[1].strip()).resolve() == tmp_path.resolve()
    assert stderr == ["warning\n"]
    assert not child.running
    assert supervisor.children == []


def test_supervisor_start_failure(tmp_path: Path) -> None:
    supervisor = ProcessSupervisor()

    child, diagnostic = supervisor.run_program(
        tmp_path / "missing", [], ProcessOptions(), ProcessCallbacks()
    )

    assert child is None
    assert diagnostic is not None
    assert diagnostic.code == "process-error"
    assert supervisor.children == []


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX process groups")
def test_terminate_all_kills_children() -> None:
    started = threading.Event()
    supervisor = ProcessSupervisor()

    child, diagnostic = supervisor.run_program(
        PYTHON,
        ["-u", "-c", "import time; print('ready'); time.sleep(60)"],
        ProcessOptions(terminate_children=True),
        ProcessCallbacks(on_stdout=lambda line: started.set()),
    )
    assert diagnostic is None
    assert started.wait(timeout=30)
    assert supervisor.children == [child]

    supervisor.terminate_all()

    status = child.wait(timeout=30)
    assert status is not None
    assert status != 0


SUPERVISED_PARENT = """\
import signal
import sys
import time
from pathlib import Path

from texdrive.process import ProcessCallbacks, ProcessOptions, ProcessSupervisor

# Start from the default actions even if the test runner ignores hangups
signal.signal(signal.SIGTERM, signal.SIG_DFL)
signal.signal(signal.SIGHUP, signal.SIG_DFL)

supervisor = ProcessSupervisor()
child, _ = supervisor.run_program(
    Path(sys.executable),
    ["-c", "import time; time.sleep(60)"],
    ProcessOptions(terminate_children=True),
    ProcessCallbacks(),
)
print(child.pid, flush=True)
time.sleep(60)
"""


def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    # A killed child may linger as a zombie until its new parent reaps it
    stat_file = Path(f"/proc/{pid}/stat")
    try:
        state = stat_file.read_text().rsplit(")", 1)[1].split()[0]
    except (OSError, IndexError):
        return True
    return state != "Z"


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX signals")
@pytest.mark.parametrize("signame", ["SIGTERM", "SIGHUP"])
def test_teardown_signal_to_parent_terminates_children(signame: str) -> None:
    signum = getattr(signal, signame)
    src = Path(__file__).resolve().parents[1] / "src"
    pythonpath = [str(src), os.environ.get("PYTHONPATH", "")]
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(p for p in pythonpath if p)}
    parent = subprocess.Popen(
        [sys.executable, "-c", SUPERVISED_PARENT],
        stdout=subprocess.PIPE,
        text=True,
        env=env,
    )
    try:
        child_pid = int(parent.stdout.readline())
        assert _alive(child_pid)

        parent.send_signal(signum)

        assert parent.wait(timeout=30) == -signum
        deadline = time.monotonic() + 10
        while _alive(child_pid) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not _alive(child_pid)
    finally:
        if parent.poll() is None:
            parent.kill()
        parent.stdout.close()


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX signals")
def test_teardown_signal_chains_previous_handler() -> None:
    received: list[int] = []
    original_term = signal.getsignal(signal.SIGTERM)
    original = signal.signal(signal.SIGHUP, lambda signum, frame: received.append(signum))
    try:
        ProcessSupervisor()
        signal.raise_signal(signal.SIGHUP)
    finally:
        signal.signal(signal.SIGTERM, original_term)
        signal.signal(signal.SIGHUP, original)

    assert received == [signal.SIGHUP]
