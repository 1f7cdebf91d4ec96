# SPDX-License-Identifier: MIT
"""Detection of faster alternative linkers (LLD, GNU gold)."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from buildprobe.configure.cache import ProbeKey, ProbeResult
from buildprobe.core.toolchain import ToolchainFamily

if TYPE_CHECKING:
    from buildprobe.configure.context import ConfigureContext
    from buildprobe.core.toolchain import Toolchain

logger = logging.getLogger(__name__)

# Report unresolved symbols even when creating a shared library, and do
# not allow unresolved references in linked shared libraries.
COMMON_LINKER_FLAGS: tuple[str, ...] = (
    "-Wl,--no-undefined",
    "-Wl,--no-allow-shlib-undefined",
)

# Linker name -> (-fuse-ld value, substring of its --version output)
LINKERS: dict[str, tuple[str, str]] = {
    "LLD": ("lld", "LLD"),
    "GNU gold": ("gold", "GNU gold"),
}

LINKER_PROBE = "linker"


def linker_flags(name: str) -> list[str]:
    """Flags selecting a known linker by name ('LLD' or 'GNU gold')."""
    fuse, _ = LINKERS[name]
    return [f"-fuse-ld={fuse}", *COMMON_LINKER_FLAGS]


def _linker_version(compiler: str, fuse: str) -> str:
    try:
        result = subprocess.run(
            [compiler, f"-fuse-ld={fuse}", "-Wl,--version"],
            capture_output=True,
            text=True,
        )
    except OSError:
        return ""
    return result.stdout


def check_available_linker(
    context: ConfigureContext, toolchain: Toolchain | None = None
) -> list[str]:
    """Return linker flags selecting the fastest available linker.

    LLD is only tried with Clang; GNU gold is tried otherwise or when
    LLD is missing. The detected linker is remembered in the probe cache
    so dependent projects do not re-run the check.

    Args:
        context: Configure context (platform, cache, compiler lookup).
        toolchain: Toolchain to link with (default: the C++ toolchain,
            falling back to C).

    Returns:
        Flags for the detected linker, or an empty list when none was
        found or the platform is not POSIX.

    Raises:
        ToolNotFoundError: If no C or C++ compiler is available.
    """
    if not context.is_posix:
        return []

    if toolchain is None:
        toolchain = context.default_toolchain()

    key = ProbeKey(toolchain.identity, LINKER_PROBE)
    cached = context.cache.get(key)
    if cached is not None and cached.values and cached.values[0] in LINKERS:
        return linker_flags(cached.values[0])

    compiler = str(context.flag_runner().compiler_path(toolchain))

    candidates = ["GNU gold"]
    if toolchain.family is ToolchainFamily.CLANG:
        # GCC does not reliably support -fuse-ld=lld
        candidates.insert(0, "LLD")

    for name in candidates:
        fuse, marker = LINKERS[name]
        if marker in _linker_version(compiler, fuse):
            logger.info("Found linker: %s", name)
            context.cache.put(key, ProbeResult(key, supported=True, values=(name,)))
            return linker_flags(name)

    # Misses are not cached
    return []
