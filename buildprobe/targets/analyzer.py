# SPDX-License-Identifier: MIT
"""Static analysis with cppcheck."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from buildprobe.configure.context import ConfigureContext
    from buildprobe.core.target import TargetSpec

logger = logging.getLogger(__name__)

CPPCHECK_ARGS: tuple[str, ...] = (
    "--enable=warning,performance,portability,style,information",
    "--template=gcc",
    "--suppress=syntaxError",
    "--suppress=passedByValue",
    "--suppress=missingInclude",
    "--suppress=unusedStructMember",
    "--suppress=unmatchedSuppression",
    "--suppress=missingIncludeSystem",
    "--suppress=ConfigurationNotChecked",
    "--quiet",
)


def register_for_cppcheck(spec: TargetSpec, context: ConfigureContext) -> bool:
    """Run cppcheck alongside the compiler for a target.

    Sets the C_CPPCHECK and CXX_CPPCHECK properties of the target to the
    cppcheck command line. If cppcheck cannot be found the use_cppcheck
    setting is switched off, so later calls do nothing.

    Returns:
        True if the target was registered.
    """
    settings = context.settings
    if not settings.use_cppcheck:
        return False

    handle = context.locator.resolve("cppcheck")
    if not handle.found:
        logger.warning("cppcheck was not found!")
        logger.warning("Calling 'register_for_cppcheck' will not have an effect.")
        settings.use_cppcheck = False
        return False
    logger.debug("Found cppcheck: %s", handle.path)

    command = [str(handle.path), *CPPCHECK_ARGS]
    spec.properties["C_CPPCHECK"] = list(command)
    spec.properties["CXX_CPPCHECK"] = list(command)
    return True
