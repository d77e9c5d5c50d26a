"""Environment variables for texi2dvi, composed the way R's tools::texi2dvi
composes them."""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import Mapping

from texdrive.models import EnvironmentOverride, ResourcePaths
from texdrive.platforms import TargetPlatform

PDFLATEX_SCRIPT_NAME = "texdrive-pdflatex"


def inputs_env_var(
    name: str,
    extra_path: PurePath,
    ensure_forward_slashes: bool,
    environ: Mapping[str, str],
    platform: TargetPlatform,
) -> tuple[str, str]:
    """Extend an input search path variable with one extra directory.

    The existing value (``.`` when unset or empty) is kept as the prefix, the
    directory is appended, and the value ends with an empty entry so that TeX
    also searches its default locations.
    """
    value = environ.get(name, "") or "."

    # R only rewrites backslashes in TEXINPUTS, and only on Windows
    if ensure_forward_slashes:
        value = platform.forward_slashes(value)

    value = platform.add_to_path(value, platform.native_path(extra_path))
    value = platform.add_to_path(value, "")
    return name, value


def inputs_environment_vars(
    paths: ResourcePaths,
    environ: Mapping[str, str],
    platform: TargetPlatform,
) -> EnvironmentOverride:
    """TEXINPUTS, BIBINPUTS and BSTINPUTS, or nothing if ``paths`` is empty."""
    if paths.empty:
        return []
    return [
        inputs_env_var("TEXINPUTS", paths.tex_inputs, True, environ, platform),
        inputs_env_var("BIBINPUTS", paths.bib_inputs, False, environ, platform),
        inputs_env_var("BSTINPUTS", paths.bst_inputs, False, environ, platform),
    ]


def pdflatex_env_var(scripts_path: Path, platform: TargetPlatform) -> tuple[str, str]:
    script = scripts_path / f"{PDFLATEX_SCRIPT_NAME}{platform.script_extension}"
    return "PDFLATEX", platform.native_path(script)


def texi2dvi_environment_vars(
    version_info: str,
    paths: ResourcePaths,
    environ: Mapping[str, str],
    platform: TargetPlatform,
    scripts_path: Path,
) -> EnvironmentOverride:
    """All environment overrides for a texi2dvi compile.

    ``version_info`` is the driver's --version banner; the environment does
    not currently depend on it.
    """
    env_vars = inputs_environment_vars(paths, environ, platform)

    # tools::texi2dvi exports these on posix
    if platform.sets_texi2dvi_workarounds:
        env_vars.append(("TEXINDY", "false"))
        env_vars.append(("LC_COLLATE", "C"))

    env_vars.append(pdflatex_env_var(scripts_path, platform))
    return env_vars


def overlay_environment(
    overrides: EnvironmentOverride, environ: Mapping[str, str]
) -> dict[str, str]:
    """Copy ``environ`` and set each override on the copy, in order."""
    env = dict(environ)
    for name, value in overrides:
        env[name] = value
    return env
