# SPDX-License-Identifier: MIT
"""Guard against building inside the source tree."""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from buildprobe.core.errors import ConfigureError

PROJECT_FILES: tuple[str, ...] = ("CMakeLists.txt",)


def enforce_out_of_source_build(
    source_dir: Path | str,
    binary_dir: Path | str,
    *,
    project_files: Sequence[str] = PROJECT_FILES,
) -> None:
    """Refuse in-source builds.

    The build directory must differ from the source directory (after
    resolving symlinks) and must not itself look like a project
    directory.

    Args:
        source_dir: Project source directory.
        binary_dir: Build directory.
        project_files: File names marking a project directory.

    Raises:
        ConfigureError: If the build directory is not valid.
    """
    source_path = Path(os.path.realpath(source_dir))
    binary_path = Path(os.path.realpath(binary_dir))

    has_project_file = any((binary_path / name).exists() for name in project_files)
    if source_path == binary_path or has_project_file:
        raise ConfigureError(
            "In-source builds are disabled and discouraged.\n"
            f"Any directory with a {' or '.join(project_files)} file is also not valid.\n"
            "Please make a 'build' subdirectory.\n"
            "Remove generated build files from "
            f"'{source_path}' to prevent a broken behavior."
        )
