"""Command line arguments for texi2dvi."""

from __future__ import annotations

from texdrive.models import ResourcePaths, ShellArguments
from texdrive.platforms import TargetPlatform

MIKTEX_SIGNATURE = "MiKTeX"


def texi2dvi_shell_args(
    version_info: str,
    paths: ResourcePaths,
    platform: TargetPlatform,
) -> ShellArguments:
    """Build the texi2dvi arguments, excluding the document filename.

    Under MiKTeX on Windows, tools::texi2dvi also passes the R TEXINPUTS and
    BSTINPUTS directories (never BIBINPUTS) as -I options, with forward
    slashes.
    """
    args: ShellArguments = ["--pdf", "--quiet"]

    if (
        platform.detects_miktex
        and MIKTEX_SIGNATURE in version_info
        and not paths.empty
    ):
        tex_inputs = platform.forward_slashes(platform.native_path(paths.tex_inputs))
        args += ["-I", tex_inputs]

        bst_inputs = platform.forward_slashes(platform.native_path(paths.bst_inputs))
        args += ["-I", bst_inputs]

    return args
