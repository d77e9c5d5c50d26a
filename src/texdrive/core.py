"""Compile a TeX document to PDF with texi2dvi.

Compilation is a two step protocol. The driver is first probed with
``--version``; the banner it prints decides part of the environment and
argument list. The document is then compiled asynchronously under the
process supervisor, with its output streamed to the console.
"""

from __future__ import annotations

import os
from functools import partial
from pathlib import Path
from typing import Mapping, Optional, Union

from texdrive.arguments import texi2dvi_shell_args
from texdrive.config import Settings, load_settings
from texdrive.console import Console, TerminalConsole
from texdrive.environment import overlay_environment, texi2dvi_environment_vars
from texdrive.hashing import crc32_hex_hash
from texdrive.logger import log_diagnostic, log_info
from texdrive.models import (
    CompileRequest,
    CompileResult,
    Diagnostic,
    EnvironmentOverride,
    ProcessResult,
    ShellArguments,
    error,
)
from texdrive.platforms import TargetPlatform
from texdrive.process import (
    ExitCallback,
    ProcessCallbacks,
    ProcessOptions,
    ProcessSupervisor,
    RunningProcess,
    find_program,
    process_supervisor,
    run_program,
)
from texdrive.resources import ShareDirQuery, r_texmf_paths, rscript_share_dir


def resolve_aliased_path(file_path: Union[str, Path]) -> Path:
    """Expand ``~`` and make the path absolute."""
    return Path(os.path.expanduser(str(file_path))).absolute()


def expected_pdf_path(tex_path: Path) -> Path:
    """Where texi2dvi --pdf writes its output for ``tex_path``."""
    return tex_path.with_suffix(".pdf")


def probe_version(program: Path) -> tuple[ProcessResult, Optional[Diagnostic]]:
    """Run ``program --version`` and capture its banner.

    Returns:
        Tuple of (process_result, diagnostic); the diagnostic is set if the
        program could not be run or exited unsuccessfully, and its ``raw``
        text is what the user should see (the captured stderr, or the error
        summary when nothing ran).
    """
    result, diagnostic = run_program(program, ["--version"])
    if diagnostic is not None:
        return result, error(
            "probe-failure", diagnostic.summary(), raw=diagnostic.summary() + "\n"
        )
    if result.exit_status != 0:
        return result, error(
            "probe-failure",
            f"{program.name} --version exited with status {result.exit_status}",
            raw=result.stderr,
        )
    return result, None


def execute_tex_to_pdf(
    request: CompileRequest,
    env_vars: EnvironmentOverride,
    args: ShellArguments,
    console: Console,
    environ: Mapping[str, str],
    supervisor: ProcessSupervisor,
    on_exit: Optional[ExitCallback] = None,
) -> tuple[Optional[RunningProcess], Optional[Diagnostic]]:
    """Start the compile of ``request.tex_path`` in its own directory."""
    options = ProcessOptions(
        environment=overlay_environment(env_vars, environ),
        working_dir=request.tex_path.parent,
        terminate_children=True,
    )
    callbacks = ProcessCallbacks(
        on_stdout=console.write_output,
        on_stderr=console.write_error,
        on_exit=on_exit,
    )
    return supervisor.run_program(
        request.program_path,
        [*args, request.tex_path.name],
        options,
        callbacks,
    )


def _failed(
    diagnostic: Diagnostic, console: Console, console_text: str, **fields
) -> CompileResult:
    log_diagnostic(diagnostic)
    console.write_error(console_text)
    return CompileResult(success=False, diagnostics=[diagnostic], **fields)


def tex_to_pdf(
    file_path: Union[str, Path],
    console: Optional[Console] = None,
    settings: Optional[Settings] = None,
    platform: Optional[TargetPlatform] = None,
    environ: Optional[Mapping[str, str]] = None,
    supervisor: Optional[ProcessSupervisor] = None,
    share_dir_query: Optional[ShareDirQuery] = None,
    on_exit: Optional[ExitCallback] = None,
) -> CompileResult:
    """Compile a TeX document to PDF.

    Returns as soon as the compile has been started; the produced PDF is not
    located here. Every failure is written to the console's error sink and
    returned as a diagnostic rather than raised.

    Args:
        file_path: The document, possibly starting with ``~``
        console: Sinks for compile output and errors (terminal by default)
        settings: Runtime settings (read from the environment by default)
        platform: Target platform conventions (the current host by default)
        environ: Environment the compile environment is layered on
            (``os.environ`` by default; never modified)
        supervisor: Supervisor that runs the compile
        share_dir_query: Callable returning R's share directory
        on_exit: Called with the exit status when the compile finishes

    Returns:
        CompileResult; ``process`` holds the running compile on success
    """
    console = console or TerminalConsole()
    settings = settings or load_settings()
    platform = platform or TargetPlatform.current()
    environ = os.environ if environ is None else environ
    supervisor = supervisor or process_supervisor()
    if share_dir_query is None:
        share_dir_query = partial(rscript_share_dir, settings.rscript, environ)

    tex_path = resolve_aliased_path(file_path)

    program_path = find_program(settings.program)
    if program_path is None:
        return _failed(
            error("binary-not-found", f"can't find {settings.program}"),
            console,
            f"can't find {settings.program}\n",
        )

    probe, diagnostic = probe_version(program_path)
    if diagnostic is not None:
        return _failed(
            diagnostic,
            console,
            diagnostic.raw,
            program=program_path,
            return_code=probe.exit_status,
        )

    paths = r_texmf_paths(share_dir_query)
    env_vars = texi2dvi_environment_vars(
        probe.stdout, paths, environ, platform, settings.scripts_path
    )
    args = texi2dvi_shell_args(probe.stdout, paths, platform)

    request = CompileRequest(tex_path=tex_path, program_path=program_path)
    compile_id = crc32_hex_hash("\0".join([str(program_path), *args, str(tex_path)]))
    log_info(f"Compiling {tex_path} [{compile_id}]")

    process, diagnostic = execute_tex_to_pdf(
        request, env_vars, args, console, environ, supervisor, on_exit
    )
    fields = dict(
        program=program_path,
        args=[*args, tex_path.name],
        environment=env_vars,
        workdir=tex_path.parent,
    )
    if diagnostic is not None:
        failure = error("compile-failure", diagnostic.summary(), raw=diagnostic.raw)
        return _failed(failure, console, failure.summary() + "\n", **fields)

    return CompileResult(success=True, process=process, **fields)
