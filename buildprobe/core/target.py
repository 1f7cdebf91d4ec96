# SPDX-License-Identifier: MIT
"""Target description with scoped usage requirements.

A TargetSpec is the caller-owned description of one build target
(executable, library or interface library). Configuration helpers
append flags, include directories and definitions to it in one of three
scopes, CMake-style:

- PUBLIC: used to build the target AND propagated to dependents
- PRIVATE: used to build the target only
- INTERFACE: propagated to dependents only

Interface libraries have nothing to build, so anything added to their
PUBLIC or PRIVATE scope is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from buildprobe.core.flags import merge_flags

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from buildprobe.core.build_type import BuildType

logger = logging.getLogger(__name__)


class TargetKind(Enum):
    EXECUTABLE = "Executable"
    LIBRARY = "Library"
    INTERFACE_LIBRARY = "InterfaceLibrary"


class Scope(Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    INTERFACE = "INTERFACE"


Attribute = Literal[
    "compile_flags",
    "link_flags",
    "include_dirs",
    "definitions",
    "compile_features",
]


@dataclass
class ScopedAttributes:
    """Attributes attached to a target in one scope.

    All lists keep insertion order and never hold duplicates.
    """

    compile_flags: list[str] = field(default_factory=list)
    link_flags: list[str] = field(default_factory=list)
    include_dirs: list[Path] = field(default_factory=list)
    definitions: list[str] = field(default_factory=list)
    compile_features: list[str] = field(default_factory=list)

    def merge(self, other: ScopedAttributes) -> None:
        """Merge another ScopedAttributes into this one.

        Avoids duplicates while preserving order.
        """
        merge_flags(self.compile_flags, other.compile_flags)
        merge_flags(self.link_flags, other.link_flags)
        for inc_dir in other.include_dirs:
            if inc_dir not in self.include_dirs:
                self.include_dirs.append(inc_dir)
        merge_flags(self.definitions, other.definitions)
        merge_flags(self.compile_features, other.compile_features)

    def clone(self) -> ScopedAttributes:
        """Create a copy of this ScopedAttributes."""
        return ScopedAttributes(
            compile_flags=list(self.compile_flags),
            link_flags=list(self.link_flags),
            include_dirs=list(self.include_dirs),
            definitions=list(self.definitions),
            compile_features=list(self.compile_features),
        )

    def is_empty(self) -> bool:
        return not (
            self.compile_flags
            or self.link_flags
            or self.include_dirs
            or self.definitions
            or self.compile_features
        )


class TargetSpec:
    """A build target as seen by the configuration helpers.

    Example:
        app = TargetSpec("app", TargetKind.EXECUTABLE)
        app.add(Scope.PRIVATE, "compile_flags", ["-Wall"])
        app.add(Scope.PUBLIC, "include_dirs", ["include"])

        hdr = TargetSpec("headers", TargetKind.INTERFACE_LIBRARY)
        hdr.add(Scope.PRIVATE, "compile_flags", ["-Wall"])  # ignored

    Attributes:
        name: Target identifier.
        kind: Executable, Library or InterfaceLibrary.
        public: PUBLIC scope attributes.
        private: PRIVATE scope attributes.
        interface: INTERFACE scope attributes.
        config_compile_flags: PRIVATE compile flags that only apply to
            the listed build types.
        config_link_flags: PRIVATE link flags that only apply to the
            listed build types.
        standards: Requested language standard per language ('c', 'cxx').
        properties: Free-form target properties (output directories,
            analyzer commands, extension switches, ...).
        output_name: File name of the built artifact (default: name).
    """

    __slots__ = (
        "name",
        "kind",
        "public",
        "private",
        "interface",
        "config_compile_flags",
        "config_link_flags",
        "standards",
        "properties",
        "output_name",
    )

    def __init__(
        self,
        name: str,
        kind: TargetKind = TargetKind.EXECUTABLE,
        *,
        output_name: str | None = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.public = ScopedAttributes()
        self.private = ScopedAttributes()
        self.interface = ScopedAttributes()
        self.config_compile_flags: dict[BuildType, list[str]] = {}
        self.config_link_flags: dict[BuildType, list[str]] = {}
        self.standards: dict[str, str] = {}
        self.properties: dict[str, Any] = {}
        self.output_name = output_name

    @property
    def is_interface(self) -> bool:
        return self.kind is TargetKind.INTERFACE_LIBRARY

    def scope(self, scope: Scope) -> ScopedAttributes:
        """Return the attributes of one scope."""
        if scope is Scope.PUBLIC:
            return self.public
        if scope is Scope.PRIVATE:
            return self.private
        return self.interface

    def accepts(self, scope: Scope) -> bool:
        """Whether attributes in ``scope`` have any effect on this target."""
        return scope is Scope.INTERFACE or not self.is_interface

    def add(self, scope: Scope, attribute: Attribute, values: Iterable[Any]) -> bool:
        """Append values to one attribute of one scope.

        Args:
            scope: Scope to add to.
            attribute: Attribute name (e.g. 'compile_flags').
            values: Values to append; include dirs are converted to Path.

        Returns:
            False if the scope is not applicable to this target kind and
            nothing was added, True otherwise.
        """
        if not self.accepts(scope):
            logger.debug(
                "Ignoring %s %s for interface target '%s'",
                scope.value,
                attribute,
                self.name,
            )
            return False

        target_list = getattr(self.scope(scope), attribute)
        if attribute == "include_dirs":
            for value in values:
                path = Path(value)
                if path not in target_list:
                    target_list.append(path)
        else:
            merge_flags(target_list, values)
        return True

    def add_for_build_types(
        self,
        active: Mapping[BuildType, bool],
        *,
        compile_flags: Iterable[str] = (),
        link_flags: Iterable[str] = (),
    ) -> bool:
        """Add PRIVATE flags that only take effect in some build types.

        Args:
            active: Table telling, per build type, whether the flags apply.
            compile_flags: Flags for compilation.
            link_flags: Flags for linking.

        Returns:
            False if the target is an interface library, True otherwise.
        """
        if self.is_interface:
            logger.debug("Ignoring build-type flags for interface target '%s'", self.name)
            return False

        compile_flags = list(compile_flags)
        link_flags = list(link_flags)
        for build_type, enabled in active.items():
            if not enabled:
                continue
            if compile_flags:
                merge_flags(self.config_compile_flags.setdefault(build_type, []), compile_flags)
            if link_flags:
                merge_flags(self.config_link_flags.setdefault(build_type, []), link_flags)
        return True

    def active_compile_flags(self, build_type: BuildType | None) -> list[str]:
        """Compile flags used to build this target in ``build_type``."""
        flags = list(self.public.compile_flags)
        merge_flags(flags, self.private.compile_flags)
        if build_type is not None:
            merge_flags(flags, self.config_compile_flags.get(build_type, []))
        return flags

    def active_link_flags(self, build_type: BuildType | None) -> list[str]:
        """Link flags used to link this target in ``build_type``."""
        flags = list(self.public.link_flags)
        merge_flags(flags, self.private.link_flags)
        if build_type is not None:
            merge_flags(flags, self.config_link_flags.get(build_type, []))
        return flags

    def usage_requirements(self) -> ScopedAttributes:
        """Attributes propagated to dependents (PUBLIC plus INTERFACE)."""
        result = self.public.clone()
        result.merge(self.interface)
        return result

    def output_file(self, binary_dir: Path | str) -> Path:
        """Path of the built artifact inside ``binary_dir``.

        Honors the RUNTIME_OUTPUT_DIRECTORY property for executables and
        LIBRARY_OUTPUT_DIRECTORY for libraries.
        """
        prop = (
            "RUNTIME_OUTPUT_DIRECTORY"
            if self.kind is TargetKind.EXECUTABLE
            else "LIBRARY_OUTPUT_DIRECTORY"
        )
        directory = Path(binary_dir)
        subdir = self.properties.get(prop)
        if subdir:
            directory = directory / subdir
        return directory / (self.output_name or self.name)

    def __repr__(self) -> str:
        return f"TargetSpec({self.name!r}, {self.kind.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TargetSpec):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)
