"""Console sinks that compile output and user-facing errors are written to."""

from __future__ import annotations

import threading
from typing import Protocol

import typer


class Console(Protocol):
    def write_output(self, text: str) -> None: ...

    def write_error(self, text: str) -> None: ...


class TerminalConsole:
    """Writes to the terminal's stdout and stderr.

    Output from the compile arrives on reader threads, so writes are
    serialized to keep lines from interleaving.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def write_output(self, text: str) -> None:
        with self._lock:
            typer.echo(text, nl=False)

    def write_error(self, text: str) -> None:
        with self._lock:
            typer.echo(text, nl=False, err=True)


class BufferedConsole:
    """Collects console text in memory (used by --json and tests)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.output: list[str] = []
        self.errors: list[str] = []

    def write_output(self, text: str) -> None:
        with self._lock:
            self.output.append(text)

    def write_error(self, text: str) -> None:
        with self._lock:
            self.errors.append(text)

    @property
    def output_text(self) -> str:
        return "".join(self.output)

    @property
    def error_text(self) -> str:
        return "".join(self.errors)
