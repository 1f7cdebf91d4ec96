# SPDX-License-Identifier: MIT
"""Applying a validated configuration to a target.

TargetConfigurator takes a ConfigurationRequest (language standards,
flags, definitions, include directories and a couple of toggles) and
records it on a TargetSpec, respecting scope rules: interface libraries
only take INTERFACE attributes and interface-compatible standard
requirements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from buildprobe.core.build_type import SANITIZERS_ACTIVE
from buildprobe.core.errors import ConfigureError
from buildprobe.core.target import Scope

if TYPE_CHECKING:
    from buildprobe.configure.settings import Settings
    from buildprobe.core.target import TargetSpec
    from buildprobe.core.toolchain import Toolchain

logger = logging.getLogger(__name__)

# Place each function and each data item in its own section so the
# linker can drop unused ones.
SECTION_GC_COMPILE_FLAGS: tuple[str, ...] = ("-ffunction-sections", "-fdata-sections")
SECTION_GC_LINK_FLAGS: tuple[str, ...] = ("-Wl,--gc-sections",)

OUTPUT_DIRECTORY_PROPERTIES: tuple[str, ...] = (
    "RUNTIME_OUTPUT_DIRECTORY",
    "ARCHIVE_OUTPUT_DIRECTORY",
    "LIBRARY_OUTPUT_DIRECTORY",
)


@dataclass
class ConfigurationRequest:
    """Everything a caller may ask TargetConfigurator to apply.

    Attributes:
        c_standard: C standard version (e.g. '11'), PUBLIC scope.
        cxx_standard: C++ standard version (e.g. '17'), PUBLIC scope.
        compiler_flags: PRIVATE compiler flags.
        sanitizer_flags: PRIVATE compile and link flags, only active in
            the build types of SANITIZERS_ACTIVE.
        linker_flags: PRIVATE linker flags.
        definitions: Preprocessor definitions per scope.
        include_dirs: Include directories per scope.
        build_type_as_output_dir: Put outputs in a build-type named
            sub-directory (single-config generators only).
        enable_unused_section_gc: Let the linker garbage collect unused
            sections.
    """

    c_standard: str | None = None
    cxx_standard: str | None = None
    compiler_flags: list[str] = field(default_factory=list)
    sanitizer_flags: list[str] = field(default_factory=list)
    linker_flags: list[str] = field(default_factory=list)
    definitions: dict[Scope, list[str]] = field(default_factory=dict)
    include_dirs: dict[Scope, list[Path | str]] = field(default_factory=dict)
    build_type_as_output_dir: bool = False
    enable_unused_section_gc: bool = False


def standard_flag(language: str, version: str) -> str:
    """Compiler flag selecting a language standard without extensions.

    Examples:
        >>> standard_flag("cxx", "17")
        '-std=c++17'
        >>> standard_flag("c", "11")
        '-std=c11'
    """
    prefix = "c++" if language == "cxx" else "c"
    return f"-std={prefix}{version}"


class TargetConfigurator:
    """Applies ConfigurationRequests to TargetSpecs.

    The configurator keeps no reference to the targets it configures.

    Example:
        configurator = TargetConfigurator(settings, toolchain)
        configurator.apply(app, ConfigurationRequest(
            cxx_standard="17",
            compiler_flags=supported_flags,
            sanitizer_flags=sanitizer_flags(address=True),
        ))
    """

    def __init__(self, settings: Settings, toolchain: Toolchain) -> None:
        self.settings = settings
        self.toolchain = toolchain

    def apply(self, spec: TargetSpec | None, request: ConfigurationRequest) -> None:
        """Apply a configuration request to a target.

        Args:
            spec: Target to configure.
            request: What to apply.

        Raises:
            ConfigureError: If no target (or a target without a name) is
                given.
        """
        if spec is None or not spec.name:
            raise ConfigureError("TARGET argument required!")

        # Scope filtering for interface libraries happens in TargetSpec.add()
        if request.compiler_flags:
            spec.add(Scope.PRIVATE, "compile_flags", request.compiler_flags)

        if request.sanitizer_flags:
            spec.add_for_build_types(
                SANITIZERS_ACTIVE,
                compile_flags=request.sanitizer_flags,
                link_flags=request.sanitizer_flags,
            )

        for scope in Scope:
            if request.include_dirs.get(scope):
                spec.add(scope, "include_dirs", request.include_dirs[scope])
            if request.definitions.get(scope):
                spec.add(scope, "definitions", request.definitions[scope])

        # check for extraneous libraries when linking
        spec.properties["LINK_WHAT_YOU_USE"] = True

        if request.linker_flags:
            spec.add(Scope.PRIVATE, "link_flags", request.linker_flags)

        feature_scope = Scope.INTERFACE if spec.is_interface else Scope.PUBLIC
        if request.c_standard is not None:
            spec.add(feature_scope, "compile_features", [f"c_std_{request.c_standard}"])
            spec.standards["c"] = request.c_standard
            spec.properties["C_EXTENSIONS"] = False
        if request.cxx_standard is not None:
            spec.add(feature_scope, "compile_features", [f"cxx_std_{request.cxx_standard}"])
            spec.standards["cxx"] = request.cxx_standard
            spec.properties["CXX_EXTENSIONS"] = False

        if request.enable_unused_section_gc and not spec.is_interface:
            self._apply_section_gc(spec)

        if request.build_type_as_output_dir:
            self._apply_output_dir(spec)

    def _apply_section_gc(self, spec: TargetSpec) -> None:
        if not self.toolchain.is_supported:
            logger.info(
                "Unused section garbage collection has no effect for the current compiler"
            )
            return
        spec.add(Scope.PRIVATE, "compile_flags", SECTION_GC_COMPILE_FLAGS)
        spec.add(Scope.PRIVATE, "link_flags", SECTION_GC_LINK_FLAGS)

    def _apply_output_dir(self, spec: TargetSpec) -> None:
        # Multi-config generators already use per-configuration directories
        if self.settings.multi_config:
            return
        build_type = self.settings.build_type
        if build_type is None:
            logger.warning("The build type is not defined!")
            return
        for prop in OUTPUT_DIRECTORY_PROPERTIES:
            spec.properties[prop] = f"{build_type.output_dir_name}/"

    def __repr__(self) -> str:
        return f"TargetConfigurator({self.toolchain})"
