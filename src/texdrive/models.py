"""Data models for texdrive compile requests, results and diagnostics."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Optional

if TYPE_CHECKING:
    from texdrive.process import RunningProcess

# Ordered (name, value) pairs overlaid onto a copy of the ambient environment
EnvironmentOverride = list[tuple[str, str]]

ShellArguments = list[str]


@dataclass
class Diagnostic:
    """A failure (or notice) reported by one of the compile stages."""

    level: Literal["error", "warning", "info"]
    code: str
    message: str
    raw: str = ""
    file: Optional[str] = None
    line: Optional[int] = None

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return self.message

    def location(self) -> str:
        if self.file is None:
            return "<unknown>"
        return f"{self.file}:{self.line}"

    def to_dict(self) -> dict:
        """Convert diagnostic to a dictionary for JSON serialization."""
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "raw": self.raw,
            "file": self.file,
            "line": self.line,
        }


def error(code: str, message: str, raw: Optional[str] = None) -> Diagnostic:
    """Build an error diagnostic located at the caller's source line.

    ``raw`` defaults to the message; an explicit empty string is kept.
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    file = caller.f_code.co_filename if caller is not None else None
    line = caller.f_lineno if caller is not None else None
    return Diagnostic(
        level="error",
        code=code,
        message=message,
        raw=message if raw is None else raw,
        file=file,
        line=line,
    )


@dataclass(frozen=True)
class ResourcePaths:
    """The R runtime's texmf input directories.

    Either all three paths are set or none are.
    """

    tex_inputs: Optional[Path] = None
    bib_inputs: Optional[Path] = None
    bst_inputs: Optional[Path] = None

    @property
    def empty(self) -> bool:
        return self.tex_inputs is None


@dataclass(frozen=True)
class CompileRequest:
    """The document to compile and the driver that compiles it."""

    tex_path: Path
    program_path: Path


@dataclass
class ProcessResult:
    """Exit status and captured output of a completed process."""

    exit_status: int
    stdout: str = ""
    stderr: str = ""


@dataclass
class CompileResult:
    """Result of submitting a document for compilation."""

    success: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    program: Optional[Path] = None
    args: ShellArguments = field(default_factory=list)
    environment: EnvironmentOverride = field(default_factory=list)
    workdir: Optional[Path] = None
    return_code: Optional[int] = None
    pdf_path: Optional[Path] = None
    log: str = ""
    # Set while the compile child is running
    process: Optional[RunningProcess] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict:
        """Convert result to a dictionary for JSON serialization."""
        return {
            "success": self.success,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "program": str(self.program) if self.program else None,
            "args": list(self.args),
            "environment": dict(self.environment),
            "workdir": str(self.workdir) if self.workdir else None,
            "return_code": self.return_code,
            "pdf_path": str(self.pdf_path) if self.pdf_path else None,
            "log": self.log,
        }
