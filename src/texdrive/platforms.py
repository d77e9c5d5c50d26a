"""Target platform conventions used when composing toolchain invocations."""

from __future__ import annotations

import ntpath
import posixpath
import sys
from dataclasses import dataclass
from pathlib import Path, PurePath


@dataclass(frozen=True)
class TargetPlatform:
    """Platform-dependent behaviour of the TeX toolchain and its R wrapper.

    Resolved once with :meth:`current` and passed explicitly, so the Windows
    and POSIX branches can be exercised from any host.
    """

    windows: bool

    @classmethod
    def current(cls) -> "TargetPlatform":
        return cls(windows=sys.platform.startswith("win"))

    @property
    def path_list_separator(self) -> str:
        return ";" if self.windows else ":"

    @property
    def script_extension(self) -> str:
        return ".cmd" if self.windows else ".sh"

    @property
    def sets_texi2dvi_workarounds(self) -> bool:
        """Whether TEXINDY and LC_COLLATE are exported for texi2dvi."""
        return not self.windows

    @property
    def detects_miktex(self) -> bool:
        return self.windows

    def forward_slashes(self, value: str) -> str:
        """Replace backslashes with forward slashes (Windows only)."""
        if not self.windows:
            return value
        return value.replace("\\", "/")

    def native_path(self, path: PurePath) -> str:
        """Absolute path text in the platform's native form."""
        text = str(path)
        if self.windows:
            if not ntpath.isabs(text):
                text = ntpath.join(str(Path.cwd()), text)
            return ntpath.normpath(text)
        if not posixpath.isabs(text):
            text = posixpath.join(str(Path.cwd()), text)
        return posixpath.normpath(text)

    def add_to_path(self, value: str, segment: str) -> str:
        """Append one segment to a path list value."""
        if not value:
            return segment
        return f"{value}{self.path_list_separator}{segment}"
