"""Shared fixtures for texdrive tests."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from loguru import logger

from texdrive.models import ResourcePaths


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Drop sinks added by a test (e.g. the CLI's) so they don't outlive it."""
    yield
    logger.remove()


@pytest.fixture
def r_share(tmp_path: Path) -> Path:
    """A fake R share directory with a texmf tree."""
    share = tmp_path / "R" / "share"
    for sub in ("tex/latex", "bibtex/bib", "bibtex/bst"):
        (share / "texmf" / sub).mkdir(parents=True)
    return share


@pytest.fixture
def r_paths(r_share: Path) -> ResourcePaths:
    texmf = r_share / "texmf"
    return ResourcePaths(
        tex_inputs=texmf / "tex" / "latex",
        bib_inputs=texmf / "bibtex" / "bib",
        bst_inputs=texmf / "bibtex" / "bst",
    )


@pytest.fixture
def tex_file(tmp_path: Path) -> Path:
    """Create a temporary .tex file for testing."""
    doc_dir = tmp_path / "doc"
    doc_dir.mkdir()
    tex = doc_dir / "paper.tex"
    tex.write_text(r"\documentclass{article}\begin{document}Test\end{document}")
    return tex
