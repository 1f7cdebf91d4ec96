# SPDX-License-Identifier: MIT
"""Toolchain identity.

A Toolchain describes which compiler is in use for one language: its
family (GNU, Clang, or anything else), its version and the path of the
compiler driver. The identity string doubles as the partition key for
cached probe results.

Apple clang has its own version scheme and is not treated as Clang; it
classifies as unsupported.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from buildprobe.core.errors import ToolNotFoundError

logger = logging.getLogger(__name__)

Language = Literal["c", "cxx"]


class ToolchainFamily(Enum):
    """Closed set of compiler families the helpers know how to drive."""

    GNU = "GNU"
    CLANG = "Clang"
    UNSUPPORTED = "Unsupported"

    @classmethod
    def from_compiler_id(cls, compiler_id: str | None) -> ToolchainFamily:
        """Map a compiler id (e.g. 'GNU', 'Clang') to a family."""
        if compiler_id == "GNU":
            return cls.GNU
        if compiler_id == "Clang":
            return cls.CLANG
        return cls.UNSUPPORTED

    @property
    def is_supported(self) -> bool:
        return self is not ToolchainFamily.UNSUPPORTED


# Compiler driver names searched when a toolchain has no explicit path
DEFAULT_COMPILERS: dict[ToolchainFamily, dict[str, tuple[str, ...]]] = {
    ToolchainFamily.GNU: {"c": ("gcc", "cc"), "cxx": ("g++", "c++")},
    ToolchainFamily.CLANG: {"c": ("clang",), "cxx": ("clang++",)},
    ToolchainFamily.UNSUPPORTED: {"c": ("cc",), "cxx": ("c++",)},
}

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class Toolchain:
    """The compiler used for one language.

    Attributes:
        family: Compiler family.
        version: Version string, empty if unknown.
        language: 'c' or 'cxx'.
        compiler: Path to the compiler driver, or None to search for
            the family's default driver names.
    """

    family: ToolchainFamily
    version: str = ""
    language: Language = "cxx"
    compiler: Path | None = None

    @property
    def identity(self) -> str:
        """Stable key used to partition cached probe results."""
        return f"{self.language}:{self.family.value}:{self.version or 'unknown'}"

    @property
    def is_supported(self) -> bool:
        return self.family.is_supported

    def compiler_candidates(self) -> tuple[str, ...]:
        """Names to try when locating the compiler driver."""
        if self.compiler is not None:
            return (str(self.compiler),)
        return DEFAULT_COMPILERS[self.family][self.language]

    def __str__(self) -> str:
        version = f" {self.version}" if self.version else ""
        return f"{self.family.value}{version} ({self.language})"


def classify_version_output(output: str) -> tuple[ToolchainFamily, str]:
    """Determine family and version from ``<compiler> --version`` output.

    Args:
        output: Text printed by the compiler.

    Returns:
        Tuple of (family, version). Version is empty if not found.
    """
    first_line = ""
    for line in output.splitlines():
        if line.strip():
            first_line = line.strip()
            break

    lowered = output.lower()
    if "apple clang" in lowered:
        return ToolchainFamily.UNSUPPORTED, ""

    if "clang version" in lowered:
        match = re.search(r"clang version\s+(\d+\.\d+(?:\.\d+)?)", output)
        return ToolchainFamily.CLANG, match.group(1) if match else ""

    if "free software foundation" in lowered or re.match(
        r"^(gcc|g\+\+|cc|c\+\+)\b", first_line
    ):
        # GCC prints e.g. "gcc (Ubuntu 13.2.0-4ubuntu3) 13.2.0"
        versions = _VERSION_RE.findall(first_line)
        return ToolchainFamily.GNU, versions[-1] if versions else ""

    return ToolchainFamily.UNSUPPORTED, ""


def detect_toolchain(compiler: Path | str, language: Language = "cxx") -> Toolchain:
    """Identify a compiler driver by running it with ``--version``.

    Args:
        compiler: Path (or name on PATH) of the compiler.
        language: Language the compiler is used for.

    Returns:
        The detected Toolchain. Unknown compilers yield an
        UNSUPPORTED toolchain rather than an error.

    Raises:
        ToolNotFoundError: If the compiler cannot be executed at all.
    """
    try:
        result = subprocess.run(
            [str(compiler), "--version"],
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise ToolNotFoundError(
            str(compiler),
            f"Required compiler for {language} could not be run: {compiler} ({e})",
        ) from e

    family, version = classify_version_output(result.stdout + result.stderr)
    toolchain = Toolchain(
        family=family, version=version, language=language, compiler=Path(compiler)
    )
    logger.debug("Detected %s compiler %s: %s", language, compiler, toolchain)
    return toolchain
