# SPDX-License-Identifier: MIT
"""Build types and the per-build-type flag tables.

Which build types activate sanitizers and which flags a Coverage build
needs are expressed as tables keyed by BuildType, consulted once when
the build graph is generated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from buildprobe.core.errors import InvalidBuildTypeError
from buildprobe.core.toolchain import Toolchain, ToolchainFamily

if TYPE_CHECKING:
    from buildprobe.configure.settings import Settings

logger = logging.getLogger(__name__)


class BuildType(Enum):
    DEBUG = "Debug"
    RELEASE = "Release"
    MIN_SIZE_REL = "MinSizeRel"
    REL_WITH_DEB_INFO = "RelWithDebInfo"
    COVERAGE = "Coverage"

    @property
    def output_dir_name(self) -> str:
        """Sub-directory name used for build-type specific outputs."""
        return self.value.lower()


DEFAULT_BUILD_TYPE = BuildType.DEBUG

VALID_BUILD_TYPES: tuple[str, ...] = tuple(bt.value for bt in BuildType)

# Build types in which sanitizer flags take effect
SANITIZERS_ACTIVE: dict[BuildType, bool] = {
    BuildType.DEBUG: True,
    BuildType.RELEASE: False,
    BuildType.MIN_SIZE_REL: False,
    BuildType.REL_WITH_DEB_INFO: True,
    BuildType.COVERAGE: True,
}


def parse_build_type(value: str | BuildType | None) -> BuildType:
    """Turn a user supplied build type into a BuildType.

    Args:
        value: Build type name (case-sensitive, as in 'RelWithDebInfo'),
            a BuildType, or None/empty for the default.

    Returns:
        The BuildType.

    Raises:
        InvalidBuildTypeError: If the value is not a known build type.
    """
    if isinstance(value, BuildType):
        return value
    if not value:
        logger.info(
            "Setting build type to '%s' as none was specified.",
            DEFAULT_BUILD_TYPE.value,
        )
        return DEFAULT_BUILD_TYPE
    try:
        return BuildType(value)
    except ValueError:
        raise InvalidBuildTypeError(value, VALID_BUILD_TYPES) from None


def setup_build_type(settings: Settings) -> None:
    """Normalize the build type handling of a configuration pass.

    Single-config generators get a validated build type (defaulting to
    Debug). Multi-config generators carry a list of configuration types
    instead, which is extended with Coverage if it is missing.

    Args:
        settings: Settings to update in place.

    Raises:
        InvalidBuildTypeError: If a single-config build type is invalid.
    """
    if settings.multi_config:
        if BuildType.COVERAGE not in settings.configuration_types:
            settings.configuration_types.append(BuildType.COVERAGE)
        return

    settings.build_type = parse_build_type(settings.build_type)
    logger.debug("Build Type: %s", settings.build_type.value)


@dataclass
class CoverageFlags:
    """Compiler and linker flags used by Coverage builds."""

    compile_flags: list[str] = field(default_factory=list)
    link_flags: list[str] = field(default_factory=list)


def coverage_flags(toolchain: Toolchain, *, force_gcov: bool = False) -> CoverageFlags:
    """Flags needed to instrument a Coverage build.

    GNU compilers (or any supported compiler when ``force_gcov`` is set)
    produce GCOV data; Clang uses source based coverage.

    Args:
        toolchain: Toolchain in use.
        force_gcov: Use the GCOV flags regardless of compiler family.

    Returns:
        CoverageFlags, empty for unsupported compilers.
    """
    family = toolchain.family
    if force_gcov or family is ToolchainFamily.GNU:
        return CoverageFlags(
            compile_flags=["-g", "-O0", "-fprofile-arcs", "-ftest-coverage"],
            link_flags=["--coverage"],
        )
    if family is ToolchainFamily.CLANG:
        return CoverageFlags(
            compile_flags=[
                "-g",
                "-O0",
                "-fprofile-instr-generate",
                "-fcoverage-mapping",
            ],
            link_flags=["-fprofile-instr-generate"],
        )
    logger.info("Coverage flags not available for the given compiler")
    return CoverageFlags()
