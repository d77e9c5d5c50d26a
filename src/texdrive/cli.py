"""CLI interface for texdrive."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Optional, Sequence

import typer

from texdrive.config import load_settings
from texdrive.console import BufferedConsole, TerminalConsole
from texdrive.core import expected_pdf_path, resolve_aliased_path, tex_to_pdf
from texdrive.logger import setup_logger
from texdrive.models import CompileResult, Diagnostic
from texdrive.process import (
    ProcessCallbacks,
    ProcessOptions,
    ProcessSupervisor,
    RunningProcess,
)

app = typer.Typer(
    name="texdrive",
    help="Compile TeX documents to PDF with texi2dvi and R's texmf inputs",
)


class DryRunSupervisor(ProcessSupervisor):
    """Probes and composes the compile but never starts it."""

    def run_program(
        self,
        program: Path,
        args: Sequence[str],
        options: ProcessOptions,
        callbacks: ProcessCallbacks,
    ) -> tuple[Optional[RunningProcess], Optional[Diagnostic]]:
        return None, None


def _print_diagnostics(result: CompileResult) -> None:
    """Print diagnostics in human-readable format."""
    for diag in result.diagnostics:
        typer.echo(f"{diag.level.upper()} [{diag.code}]: {diag.message}", err=True)


def _print_plan(result: CompileResult) -> None:
    typer.echo(f"cd {result.workdir}")
    for name, value in result.environment:
        typer.echo(f"{name}={value}")
    typer.echo(" ".join([str(result.program), *result.args]))


def _exit_code(result: CompileResult) -> int:
    if result.success:
        return 0
    codes = {d.code for d in result.diagnostics}
    if codes & {"file-not-found", "binary-not-found"}:
        return 1
    return 2


@app.command()
def main(
    input_file: Annotated[
        Path,
        typer.Argument(help="Path to the input .tex file"),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output result as JSON"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Probe the driver and print the compile command"),
    ] = False,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Log level (default: TEXDRIVE_LOG_LEVEL)"),
    ] = None,
) -> None:
    """Compile a TeX document to PDF.

    Examples:
        texdrive paper.tex
        texdrive paper.tex --json
        texdrive paper.tex --dry-run
    """
    settings = load_settings()
    setup_logger(log_level or settings.log_level, settings.log_file)

    tex_path = resolve_aliased_path(input_file)
    if not tex_path.is_file():
        result = CompileResult(
            success=False,
            diagnostics=[
                Diagnostic(
                    level="error",
                    code="file-not-found",
                    message=f"Input file not found: {tex_path}",
                    raw=str(tex_path),
                )
            ],
        )
        if json_output:
            typer.echo(json.dumps(result.to_dict(), indent=2))
        else:
            typer.echo(f"Error: Input file not found: {tex_path}", err=True)
        sys.exit(1)

    console = BufferedConsole() if json_output else TerminalConsole()
    supervisor = DryRunSupervisor() if dry_run else None

    result = tex_to_pdf(tex_path, console=console, settings=settings, supervisor=supervisor)

    if result.success and result.process is not None:
        result.return_code = result.process.wait()
        pdf_path = expected_pdf_path(tex_path)
        result.success = result.return_code == 0 and pdf_path.exists()
        if pdf_path.exists():
            result.pdf_path = pdf_path
        if not result.success:
            result.diagnostics.append(
                Diagnostic(
                    level="error",
                    code="compile-failure",
                    message=(
                        f"texi2dvi exited with status {result.return_code}"
                        if result.return_code
                        else f"No PDF produced at {pdf_path}"
                    ),
                    raw=f"exit status {result.return_code}",
                )
            )

    if isinstance(console, BufferedConsole):
        result.log = console.output_text + console.error_text

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(_exit_code(result))

    if dry_run and result.success:
        _print_plan(result)
    elif result.success and result.pdf_path:
        typer.echo(f"OK: {result.pdf_path}")
    elif not result.success:
        typer.echo("Compilation failed.", err=True)
        _print_diagnostics(result)
    sys.exit(_exit_code(result))


if __name__ == "__main__":
    app()
