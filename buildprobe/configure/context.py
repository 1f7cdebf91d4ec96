# SPDX-License-Identifier: MIT
"""Configure context for buildprobe.

The ConfigureContext owns every piece of state of one configuration
pass: settings, the probe cache, the tool locator, the detected
toolchains and the build graph that coverage/format helpers add steps
to. It is created explicitly and passed to the helpers; nothing in
buildprobe keeps process globals.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from buildprobe.configure.cache import ProbeCache, ProbeKey
from buildprobe.configure.locator import ToolLocator
from buildprobe.configure.probe import FlagProbeRunner
from buildprobe.configure.settings import Settings, get_var
from buildprobe.core.errors import ToolNotFoundError
from buildprobe.core.toolchain import Language, Toolchain, detect_toolchain
from buildprobe.targets.pipeline import BuildGraph

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

CACHE_FILE = "buildprobe_cache.json"

# Compiler drivers tried when CC/CXX are not set
COMPILER_SEARCH: dict[str, tuple[str, ...]] = {
    "c": ("cc", "gcc", "clang"),
    "cxx": ("c++", "g++", "clang++"),
}
COMPILER_VARS: dict[str, str] = {"c": "CC", "cxx": "CXX"}


class ConfigureContext:
    """State of one configuration pass.

    Example:
        ctx = ConfigureContext(Settings.from_env())
        cxx = ctx.toolchain("cxx")
        flags = ctx.probe_flags(common_compiler_flags(cxx), cxx)
        ctx.save()

    Attributes:
        settings: Settings of this pass.
        cache: Probe result cache.
        locator: Executable lookup.
        graph: Build graph receiving pipeline steps.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        cache: ProbeCache | None = None,
        locator: ToolLocator | None = None,
        graph: BuildGraph | None = None,
    ) -> None:
        """Create a configure context.

        Args:
            settings: Settings (default: read from the environment).
            cache: Probe cache (default: loaded from the build directory).
            locator: Tool locator (default: a fresh PATH based one).
            graph: Build graph (default: a new empty graph).
        """
        self.settings = settings if settings is not None else Settings.from_env()
        # Steps run with their own cwd, so both dirs are made absolute
        self.settings.source_dir = Path(os.path.abspath(self.settings.source_dir))
        self.settings.binary_dir = Path(os.path.abspath(self.settings.binary_dir))
        if cache is None:
            cache = ProbeCache.load(self.cache_path)
        self.cache = cache
        self.locator = locator if locator is not None else ToolLocator()
        self.graph = graph if graph is not None else BuildGraph()
        self._toolchains: dict[str, Toolchain] = {}
        self._refreshed: set[ProbeKey] = set()
        self._runner: FlagProbeRunner | None = None

    @property
    def source_dir(self) -> Path:
        return self.settings.source_dir

    @property
    def binary_dir(self) -> Path:
        return self.settings.binary_dir

    @property
    def is_posix(self) -> bool:
        return os.name == "posix"

    @property
    def cache_path(self) -> Path:
        return self.settings.binary_dir / CACHE_FILE

    def register_toolchain(self, toolchain: Toolchain) -> None:
        """Use a known toolchain for its language instead of detecting one."""
        self._toolchains[toolchain.language] = toolchain

    def toolchain(self, language: Language = "cxx") -> Toolchain:
        """Return the toolchain for a language, detecting it on first use.

        The compiler comes from the CC/CXX variable if set, otherwise
        from the first default driver found on PATH.

        Raises:
            ToolNotFoundError: If no compiler is available.
        """
        if language in self._toolchains:
            return self._toolchains[language]

        compiler = get_var(COMPILER_VARS[language])
        if compiler:
            path = self.locator.require([compiler])
        else:
            path = self.locator.require(COMPILER_SEARCH[language])

        toolchain = detect_toolchain(path, language)
        logger.info("Using %s compiler: %s", language, toolchain)
        self._toolchains[language] = toolchain
        return toolchain

    def default_toolchain(self) -> Toolchain:
        """The C++ toolchain, or the C toolchain if there is no C++ compiler.

        Raises:
            ToolNotFoundError: If neither compiler is available.
        """
        try:
            return self.toolchain("cxx")
        except ToolNotFoundError:
            pass
        try:
            return self.toolchain("c")
        except ToolNotFoundError:
            raise ToolNotFoundError(
                "cc",
                "Required compiler for neither C or C++ was found!",
            ) from None

    def flag_runner(self) -> FlagProbeRunner:
        """The FlagProbeRunner bound to this context's cache and locator."""
        if self._runner is None:
            self._runner = FlagProbeRunner(
                self.cache,
                self.locator,
                work_dir=self.binary_dir / "probes",
            )
        return self._runner

    def probe_flags(self, candidates: Sequence[str], toolchain: Toolchain) -> list[str]:
        """Probe flags honoring the force-probe-refresh setting.

        A forced refresh re-probes each candidate list once per pass;
        later calls with the same list use the fresh results.
        """
        runner = self.flag_runner()
        key = runner.cache_key(candidates, toolchain)
        force = self.settings.force_probe_refresh and key not in self._refreshed
        result = runner.probe(candidates, toolchain, force_refresh=force)
        if force:
            self._refreshed.add(key)
        return result

    def save(self) -> Path:
        """Persist the probe cache and clear the one-shot refresh toggle."""
        if self._refreshed:
            self.settings.force_probe_refresh = False
        return self.cache.save(self.cache_path)

    def __repr__(self) -> str:
        return (
            f"ConfigureContext(source_dir={self.source_dir}, "
            f"binary_dir={self.binary_dir})"
        )
