# SPDX-License-Identifier: MIT
"""Git submodule checkout."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from buildprobe.core.errors import ToolInvocationError

if TYPE_CHECKING:
    from buildprobe.configure.context import ConfigureContext

logger = logging.getLogger(__name__)

GIT_CALL_FAILED = "'git submodule' call failed, please checkout submodules manually!"


def update_git_submodule(context: ConfigureContext, path: Path | str) -> bool:
    """Initialize and update a submodule recursively.

    Args:
        context: Configure context; git runs in its source directory.
        path: Submodule path, absolute or relative to the source
            directory.

    Returns:
        True if the submodule was updated, False if this is not a git
        repository or git is missing (both only warn).

    Raises:
        ToolInvocationError: If git fails or the submodule is still not
            checked out afterwards.
    """
    source_dir = context.source_dir
    no_effect = "Calling 'update_git_submodule' will not have an effect."

    if not (source_dir / ".git").exists():
        logger.warning("%s is not a Git repository!", source_dir)
        logger.warning(no_effect)
        return False

    git = context.locator.resolve("git")
    if not git.found:
        logger.warning("git was not found!")
        logger.warning(no_effect)
        return False
    logger.debug("Found git: %s", git.path)

    cmd = [str(git.path), "submodule", "update", "--init", "--recursive", str(path)]
    result = subprocess.run(cmd, cwd=source_dir, capture_output=True, text=True)
    if result.returncode != 0:
        logger.info("Git process result: %d", result.returncode)
        raise ToolInvocationError(
            GIT_CALL_FAILED,
            command=cmd,
            returncode=result.returncode,
            stderr=result.stderr,
        )

    submodule = Path(path)
    if not submodule.is_absolute():
        submodule = source_dir / submodule
    if not (submodule / ".git").exists():
        raise ToolInvocationError(GIT_CALL_FAILED, command=cmd, stderr=result.stderr)
    return True
