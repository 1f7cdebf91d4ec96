# SPDX-License-Identifier: MIT
"""Compiler flag catalogues and flag list helpers.

The warning flag lists here are candidates: they are meant to be run
through FlagProbeRunner.probe() so that only the flags the current
compiler accepts end up on a target.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from buildprobe.core.toolchain import ToolchainFamily

if TYPE_CHECKING:
    from collections.abc import Iterable

    from buildprobe.core.toolchain import Toolchain

logger = logging.getLogger(__name__)


COMMON_CXX_FLAGS: tuple[str, ...] = (
    "-pedantic",
    "-pedantic-errors",
    "-Wextra",
    "-Wall",
    "-Wdouble-promotion",
    "-Wundef",
    "-Wshadow",
    "-Wnull-dereference",
    "-Wzero-as-null-pointer-constant",
    "-Wunused",
    "-Wold-style-cast",
    "-Wsign-compare",
    "-Wunreachable-code",
    "-Wunreachable-code-break",
    "-Wunreachable-code-return",
    "-Wextra-semi-stmt",
    "-Wreorder",
    "-Wcast-qual",
    "-Wconversion",
    "-Wfour-char-constants",
    "-Wformat=2",
    "-Wheader-hygiene",
    "-Wnewline-eof",
    "-Wnon-virtual-dtor",
    "-Wpointer-arith",
    "-Wfloat-equal",
    "-Wpragmas",
    "-Wreserved-user-defined-literal",
    "-Wsuper-class-method-mismatch",
    "-Wswitch-enum",
    "-Wcovered-switch-default",
    "-Wthread-safety",
    "-Wunused-exception-parameter",
    "-Wvector-conversion",
    "-Wkeyword-macro",
    "-Wformat-pedantic",
    "-Woverlength-strings",
    "-Wdocumentation",
    "-Wimplicit-fallthrough",
    "-Wchar-subscripts",
    "-Wmisleading-indentation",
    "-Wmissing-braces",
    "-Wpessimizing-move",
    "-Wdeprecated-copy",
    "-Wredundant-move",
    "-Wtype-limits",
    "-fno-common",
)

COMMON_C_FLAGS: tuple[str, ...] = (
    "-pedantic",
    "-pedantic-errors",
    "-Wextra",
    "-Wall",
    "-Wdouble-promotion",
    "-Wundef",
    "-Wshadow",
    "-Wnull-dereference",
    "-Wunused",
    "-Wsign-compare",
    "-Wunreachable-code",
    "-Wunreachable-code-break",
    "-Wunreachable-code-return",
    "-Wextra-semi-stmt",
    "-Wreorder",
    "-Wcast-qual",
    "-Wconversion",
    "-Wfour-char-constants",
    "-Wformat=2",
    "-Wheader-hygiene",
    "-Wnewline-eof",
    "-Wpointer-arith",
    "-Wfloat-equal",
    "-Wpragmas",
    "-Wswitch-enum",
    "-Wcovered-switch-default",
    "-Wthread-safety",
    "-Wkeyword-macro",
    "-Wformat-pedantic",
    "-Wdocumentation",
    "-Wimplicit-fallthrough",
    "-Wmisleading-indentation",
    "-Wmissing-braces",
    "-fno-common",
)

# GCC accepts any unknown -Wno-* flag silently when probed on its own, so
# this one is only handed to Clang.
CLANG_ONLY_FLAGS: tuple[str, ...] = ("-Wno-gnu-zero-variadic-macro-arguments",)

WARNINGS_AS_ERRORS_FLAG = "-Werror"


def common_compiler_flags(
    toolchain: Toolchain, *, warnings_as_errors: bool = False
) -> list[str]:
    """Return the recommended warning flags for a toolchain.

    Args:
        toolchain: Toolchain the flags are meant for. Its language selects
            the C or C++ list.
        warnings_as_errors: Append -Werror.

    Returns:
        Candidate flags, or an empty list for unsupported compilers.
    """
    if not toolchain.is_supported:
        logger.warning("Compiler (%s) not supported!", toolchain.family.value)
        return []

    base = COMMON_CXX_FLAGS if toolchain.language == "cxx" else COMMON_C_FLAGS
    flags = list(base)
    if toolchain.family is ToolchainFamily.CLANG:
        flags.extend(CLANG_ONLY_FLAGS)
    if warnings_as_errors:
        flags.append(WARNINGS_AS_ERRORS_FLAG)
    return flags


def sanitizer_flags(
    *,
    address: bool = False,
    leak: bool = False,
    undefined_behavior: bool = False,
    memory: bool = False,
    thread: bool = False,
) -> list[str]:
    """Return compiler/linker flags for the requested sanitizers.

    Memory sanitizer cannot be combined with Address, Leak or Thread, and
    Thread cannot be combined with Address or Leak. Incompatible requests
    are dropped with a warning.

    Examples:
        >>> sanitizer_flags(address=True, undefined_behavior=True)
        ['-fsanitize=address,undefined', '-fno-omit-frame-pointer']
        >>> sanitizer_flags()
        []
    """
    requested: list[str] = []
    if address:
        requested.append("address")
    if leak:
        requested.append("leak")
    if undefined_behavior:
        requested.append("undefined")
    if memory:
        if address or leak or thread:
            logger.warning("Memory sanitizer incompatible with Address, Thread and Leak.")
        else:
            requested.append("memory")
    if thread:
        if address or leak:
            logger.warning("Thread sanitizer incompatible with Address and Leak.")
        else:
            requested.append("thread")

    result: list[str] = []
    if requested:
        result.append("-fsanitize=" + ",".join(requested))
    if "address" in requested or "memory" in requested:
        # nicer stack traces
        result.append("-fno-omit-frame-pointer")
    return result


def normalize_flags(flags: Iterable[str]) -> list[str]:
    """Strip whitespace and drop empty entries, keeping order."""
    return [flag.strip() for flag in flags if flag and flag.strip()]


def merge_flags(existing: list[str], new: Iterable[str]) -> None:
    """Merge new flags into existing list, avoiding duplicates.

    This modifies ``existing`` in place, appending entries from ``new``
    that aren't already present. First occurrence wins.

    Examples:
        >>> existing = ["-O2", "-Wall"]
        >>> merge_flags(existing, ["-Wall", "-Wextra"])
        >>> existing
        ['-O2', '-Wall', '-Wextra']
    """
    seen = set(existing)
    for flag in new:
        if flag not in seen:
            seen.add(flag)
            existing.append(flag)
