"""Locate the texmf directories shipped with the R runtime."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Optional

from texdrive.config import DEFAULT_RSCRIPT
from texdrive.logger import log_diagnostic
from texdrive.models import Diagnostic, ResourcePaths, error
from texdrive.process import find_program, run_program

# Returns (share_dir, diagnostic); share_dir is meaningful only without a diagnostic
ShareDirQuery = Callable[[], tuple[str, Optional[Diagnostic]]]

R_HOME_SHARE_EXPR = 'cat(R.home("share"))'


def rscript_share_dir(
    rscript: str = DEFAULT_RSCRIPT,
    environ: Optional[Mapping[str, str]] = None,
) -> tuple[str, Optional[Diagnostic]]:
    """Ask R for its share directory.

    R_SHARE_DIR (exported by R into every session) is used when present,
    otherwise Rscript is run to evaluate ``R.home("share")``.
    """
    if environ is not None and environ.get("R_SHARE_DIR"):
        return environ["R_SHARE_DIR"], None

    rscript_path = find_program(rscript)
    if rscript_path is None:
        return "", error("resource-not-found", f"can't find {rscript}")

    result, diagnostic = run_program(
        rscript_path, ["--vanilla", "-e", R_HOME_SHARE_EXPR], env=environ
    )
    if diagnostic is not None:
        return "", diagnostic
    if result.exit_status != 0:
        return "", error(
            "resource-not-found",
            f"{rscript} exited with status {result.exit_status}",
            raw=result.stderr,
        )
    return result.stdout.strip(), None


def r_texmf_paths(share_dir_query: ShareDirQuery) -> ResourcePaths:
    """Return the R texmf input directories, or empty paths if unavailable.

    Failures are logged and never raised: callers simply go without the R
    directories.

    Args:
        share_dir_query: Callable returning R's share directory

    Returns:
        ResourcePaths for texmf/tex/latex, texmf/bibtex/bib and
        texmf/bibtex/bst (their own existence is not checked)
    """
    share_dir, diagnostic = share_dir_query()
    if diagnostic is not None:
        log_diagnostic(diagnostic)
        return ResourcePaths()

    share_path = Path(share_dir)
    if not share_dir or not share_path.exists():
        log_diagnostic(error("resource-not-found", f"Path not found: {share_dir}"))
        return ResourcePaths()

    texmf_path = share_path / "texmf"
    if not texmf_path.exists():
        log_diagnostic(
            error("resource-not-found", f"Path not found: {texmf_path.absolute()}")
        )
        return ResourcePaths()

    return ResourcePaths(
        tex_inputs=texmf_path / "tex" / "latex",
        bib_inputs=texmf_path / "bibtex" / "bib",
        bst_inputs=texmf_path / "bibtex" / "bst",
    )
