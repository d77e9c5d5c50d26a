"""texdrive: compile TeX documents to PDF through texi2dvi, with R's texmf inputs."""

from __future__ import annotations

from texdrive.core import tex_to_pdf
from texdrive.models import CompileResult, Diagnostic, ResourcePaths
from texdrive.platforms import TargetPlatform

__version__ = "0.1.0"
__all__ = ["tex_to_pdf", "CompileResult", "Diagnostic", "ResourcePaths", "TargetPlatform"]
