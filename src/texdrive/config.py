"""Runtime settings read from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_PROGRAM = "texi2dvi"
DEFAULT_RSCRIPT = "Rscript"
DEFAULT_LOG_LEVEL = "WARNING"

# Substitute pdflatex driver scripts shipped with the package
BUNDLED_SCRIPTS_PATH = Path(__file__).parent / "scripts"


@dataclass(frozen=True)
class Settings:
    """Configuration for one texdrive process."""

    program: str = DEFAULT_PROGRAM
    scripts_path: Path = BUNDLED_SCRIPTS_PATH
    rscript: str = DEFAULT_RSCRIPT
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[Path] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from TEXDRIVE_* variables.

    When ``environ`` is omitted, a ``.env`` file in the working directory is
    loaded first (without overriding variables that are already set).
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    scripts_path = environ.get("TEXDRIVE_SCRIPTS_PATH")
    log_file = environ.get("TEXDRIVE_LOG_FILE")
    return Settings(
        program=environ.get("TEXDRIVE_PROGRAM") or DEFAULT_PROGRAM,
        scripts_path=Path(scripts_path) if scripts_path else BUNDLED_SCRIPTS_PATH,
        rscript=environ.get("TEXDRIVE_RSCRIPT") or DEFAULT_RSCRIPT,
        log_level=(environ.get("TEXDRIVE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        log_file=Path(log_file) if log_file else None,
    )
