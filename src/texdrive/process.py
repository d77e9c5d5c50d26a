"""Child process execution: program lookup, synchronous runs and a supervisor
for asynchronous runs that stream their output through callbacks."""

from __future__ import annotations

import atexit
import os
import shutil
import signal
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from types import FrameType
from typing import IO, Any, Callable, Mapping, Optional, Sequence

from texdrive.logger import log_debug, log_warning
from texdrive.models import Diagnostic, ProcessResult, error

OutputCallback = Callable[[str], None]
ExitCallback = Callable[[int], None]

# Signals that tear down the orchestrating process without running atexit
TEARDOWN_SIGNALS = ("SIGTERM", "SIGHUP")


def find_program(name: str, search_path: Optional[str] = None) -> Optional[Path]:
    """Locate an executable by name.

    Args:
        name: Program name (e.g. 'texi2dvi')
        search_path: PATH-style string to search instead of the process PATH

    Returns:
        Absolute path to the executable if found, None otherwise
    """
    found = shutil.which(name, path=search_path)
    return Path(found).resolve() if found else None


def run_program(
    program: Path,
    args: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> tuple[ProcessResult, Optional[Diagnostic]]:
    """Run a program to completion and capture its output.

    An empty ``cwd`` or ``env`` means the current directory and environment.

    Returns:
        Tuple of (process_result, diagnostic). The diagnostic is set only when
        the program could not be run at all; a non-zero exit status is not an
        error at this level.
    """
    cmd = [str(program), *args]
    log_debug(f"Running {cmd}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            cwd=str(cwd) if cwd else None,
            env=dict(env) if env else None,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return ProcessResult(exit_status=-1), error(
            "process-timeout", f"{program} timed out after {timeout} seconds"
        )
    except OSError as e:
        return ProcessResult(exit_status=-1), error(
            "process-error", f"Unable to run {program}: {e.strerror or e}", raw=str(e)
        )
    return ProcessResult(result.returncode, result.stdout, result.stderr), None


@dataclass
class ProcessOptions:
    """How an asynchronous child is started."""

    environment: Optional[Mapping[str, str]] = None
    working_dir: Optional[Path] = None
    # Kill the child and all of its descendants when the supervisor shuts down
    terminate_children: bool = False


@dataclass
class ProcessCallbacks:
    on_stdout: Optional[OutputCallback] = None
    on_stderr: Optional[OutputCallback] = None
    on_exit: Optional[ExitCallback] = None


@dataclass
class RunningProcess:
    """Handle to a child started by :class:`ProcessSupervisor`."""

    popen: subprocess.Popen
    terminate_children: bool
    _done: threading.Event = field(default_factory=threading.Event, repr=False)
    exit_status: Optional[int] = None

    @property
    def pid(self) -> int:
        return self.popen.pid

    @property
    def running(self) -> bool:
        return not self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the child has exited and its output was delivered.

        Returns the exit status, or None if ``timeout`` elapsed first.
        """
        self._done.wait(timeout)
        return self.exit_status

    def terminate(self) -> None:
        """Terminate the child (and its descendants if so configured)."""
        if self.popen.poll() is not None:
            return
        if not self.terminate_children:
            self.popen.terminate()
            return
        if sys.platform.startswith("win"):
            subprocess.run(
                ["taskkill", "/T", "/F", "/PID", str(self.popen.pid)],
                capture_output=True,
            )
        else:
            try:
                os.killpg(self.popen.pid, signal.SIGTERM)
            except ProcessLookupError:
                pass


class ProcessSupervisor:
    """Runs child processes asynchronously and tracks them until they exit.

    Output is read on one thread per stream and handed to the callbacks line
    by line. Children started with ``terminate_children`` are terminated,
    together with their descendants, by :meth:`terminate_all`. That runs when
    the interpreter exits and, on POSIX, when the process receives SIGTERM or
    SIGHUP (the signal is then passed on to the previous handler).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._children: list[RunningProcess] = []
        atexit.register(self.terminate_all)
        self._install_signal_handlers()

    def _install_signal_handlers(self) -> None:
        # signal.signal() is only allowed on the main thread
        if threading.current_thread() is not threading.main_thread():
            return
        for name in TEARDOWN_SIGNALS:
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            previous = signal.getsignal(signum)
            signal.signal(signum, partial(self._on_teardown_signal, previous))

    def _on_teardown_signal(
        self, previous: Any, signum: int, frame: Optional[FrameType]
    ) -> None:
        self._terminate_without_logging()
        if callable(previous):
            previous(signum, frame)
            return
        if previous == signal.SIG_IGN:
            return
        # Re-deliver with the default action so the process still dies of it
        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)

    @property
    def children(self) -> list[RunningProcess]:
        with self._lock:
            return list(self._children)

    def run_program(
        self,
        program: Path,
        args: Sequence[str],
        options: ProcessOptions,
        callbacks: ProcessCallbacks,
    ) -> tuple[Optional[RunningProcess], Optional[Diagnostic]]:
        """Start ``program`` and return immediately.

        The diagnostic reports only a failure to start the child; the exit
        status is delivered to ``callbacks.on_exit``.
        """
        cmd = [str(program), *args]
        popen_kwargs: dict = {}
        if options.terminate_children:
            if sys.platform.startswith("win"):
                popen_kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
            else:
                popen_kwargs["start_new_session"] = True

        log_debug(f"Starting {cmd} in {options.working_dir}")
        try:
            popen = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
                cwd=str(options.working_dir) if options.working_dir else None,
                env=dict(options.environment) if options.environment else None,
                **popen_kwargs,
            )
        except OSError as e:
            return None, error(
                "process-error", f"Unable to run {program}: {e.strerror or e}", raw=str(e)
            )

        child = RunningProcess(popen=popen, terminate_children=options.terminate_children)
        with self._lock:
            self._children.append(child)

        readers = [
            self._start_reader(popen.stdout, callbacks.on_stdout),
            self._start_reader(popen.stderr, callbacks.on_stderr),
        ]
        threading.Thread(
            target=self._wait_for_exit,
            args=(child, readers, callbacks.on_exit),
            name=f"texdrive-wait-{popen.pid}",
            daemon=True,
        ).start()
        return child, None

    def terminate_all(self) -> None:
        """Terminate every running child configured with terminate_children."""
        for child in self.children:
            if child.terminate_children and child.running:
                log_warning(f"Terminating child process {child.pid}")
                child.terminate()

    def _terminate_without_logging(self) -> None:
        # Signal handlers must not wait on locks the interrupted code may hold
        for child in list(self._children):
            if child.terminate_children and child.running:
                child.terminate()

    @staticmethod
    def _start_reader(
        stream: Optional[IO[str]], callback: Optional[OutputCallback]
    ) -> threading.Thread:
        def pump() -> None:
            if stream is None:
                return
            with stream:
                for line in stream:
                    if callback is not None:
                        callback(line)

        thread = threading.Thread(target=pump, daemon=True)
        thread.start()
        return thread

    def _wait_for_exit(
        self,
        child: RunningProcess,
        readers: list[threading.Thread],
        on_exit: Optional[ExitCallback],
    ) -> None:
        for reader in readers:
            reader.join()
        child.exit_status = child.popen.wait()
        with self._lock:
            self._children.remove(child)
        log_debug(f"Child process {child.pid} exited with status {child.exit_status}")
        try:
            if on_exit is not None:
                on_exit(child.exit_status)
        finally:
            child._done.set()


_supervisor: Optional[ProcessSupervisor] = None


def process_supervisor() -> ProcessSupervisor:
    """The process-wide supervisor, created on first use."""
    global _supervisor
    if _supervisor is None:
        _supervisor = ProcessSupervisor()
    return _supervisor
