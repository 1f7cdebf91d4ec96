# SPDX-License-Identifier: MIT
"""clang-format steps for the files tracked by git."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from buildprobe.core.errors import ToolInvocationError
from buildprobe.targets.pipeline import PipelineStep

if TYPE_CHECKING:
    from buildprobe.configure.context import ConfigureContext

logger = logging.getLogger(__name__)

CHECK_FORMAT = "check_format"
FORMAT = "format"

SOURCE_FILE_RE = re.compile(r"\.(cpp|hpp|cxx|hxx|cc|hh|c|h)$")

NO_FORMAT_TARGETS = "Formatting related targets will not be available!"


def _git_ls_files(git: Path, source_dir: Path, *args: str) -> list[str]:
    result = subprocess.run(
        [str(git), "ls-files", *args],
        cwd=source_dir,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise ToolInvocationError(
            f"git ls-files failed in {source_dir}: {result.stderr.strip()}",
            command=result.args,
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return [line for line in result.stdout.splitlines() if line]


def tracked_source_files(git: Path, source_dir: Path) -> list[Path]:
    """C and C++ files tracked by git, as absolute paths.

    Files deleted from the work tree but not yet from the index are left
    out so clang-format does not fail on them.

    Raises:
        ToolInvocationError: If git fails, e.g. outside a repository.
    """
    deleted = set(_git_ls_files(git, source_dir, "--deleted"))
    files = _git_ls_files(git, source_dir, "--cached", "--exclude-standard")
    return [
        source_dir / name
        for name in files
        if SOURCE_FILE_RE.search(name) and name not in deleted
    ]


def define_format_targets(context: ConfigureContext) -> list[PipelineStep]:
    """Add the 'format' and 'check_format' steps to the build graph.

    'format' rewrites the files in place; 'check_format' only reports
    files that are not formatted and fails if there are any. Both use
    the project's .clang-format style.

    Returns:
        The created steps; empty if clang-format or git is missing, or
        if git lists no C or C++ files.
    """
    clang_format = context.locator.resolve("clang-format").path
    if clang_format is None:
        logger.warning("clang-format was not found!")
        logger.warning(NO_FORMAT_TARGETS)
        return []
    logger.debug("Found clang-format: %s", clang_format)

    git = context.locator.resolve("git").path
    if git is None:
        logger.warning("git was not found!")
        logger.warning(NO_FORMAT_TARGETS)
        return []
    logger.debug("Found git: %s", git)

    source_dir = context.source_dir
    try:
        files = [str(f) for f in tracked_source_files(git, source_dir)]
    except ToolInvocationError as e:
        logger.warning("%s", e.message)
        logger.warning(NO_FORMAT_TARGETS)
        return []
    if not files:
        # clang-format with no files reads stdin
        logger.warning("No C or C++ files are tracked by git in %s", source_dir)
        logger.warning(NO_FORMAT_TARGETS)
        return []
    logger.info("%d files to format", len(files))

    # TODO: check that clang-format is at least version 10 (first with --dry-run)
    steps = [
        PipelineStep(
            CHECK_FORMAT,
            commands=[[str(clang_format), "--dry-run", "--Werror", "--style=file", *files]],
            working_dir=source_dir,
            description="Checking formatting",
        ),
        PipelineStep(
            FORMAT,
            commands=[[str(clang_format), "-i", "--style=file", *files]],
            working_dir=source_dir,
            description="Formatting sources",
        ),
    ]
    for step in steps:
        context.graph.add_step(step)
    return steps
