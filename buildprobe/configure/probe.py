# SPDX-License-Identifier: MIT
"""Compiler probes.

FlagProbeRunner answers "which of these flags does the compiler accept?"
by compiling a trivial translation unit once per flag. Each flag is
judged on its own; flags that are fine alone but clash with each other
are not detected.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from buildprobe.configure.cache import ProbeCache, ProbeKey, ProbeResult
from buildprobe.core.flags import normalize_flags

if TYPE_CHECKING:
    from buildprobe.configure.locator import ToolLocator
    from buildprobe.core.toolchain import Toolchain

logger = logging.getLogger(__name__)

# Minimal translation units per language
PROBE_SOURCES: dict[str, tuple[str, str]] = {
    "c": (".c", "int main(void) { return 0; }\n"),
    "cxx": (".cpp", "int main() { return 0; }\n"),
}

ATOMICS_SOURCE = """\
#include <atomic>
std::atomic<int> x;
std::atomic<short> y;
std::atomic<char> z;
int main() {
    ++z;
    ++y;
    return ++x;
}
"""

ATOMICS64_SOURCE = """\
#include <atomic>
#include <cstdint>
std::atomic<uint64_t> x (0);
int main() {
    uint64_t i = x.load(std::memory_order_relaxed);
    (void)i;
    return 0;
}
"""


class FlagProbeRunner:
    """Runs compiler probes and caches their outcome.

    Example:
        runner = FlagProbeRunner(cache, locator)
        supported = runner.probe(["-Wall", "-Wfoo"], toolchain)

    Attributes:
        cache: Where flag-list results are stored.
        locator: Used to find the compiler driver.
        work_dir: Directory for probe sources and objects (default: a
            temporary directory per probe).
    """

    def __init__(
        self,
        cache: ProbeCache,
        locator: ToolLocator,
        *,
        work_dir: Path | str | None = None,
    ) -> None:
        self.cache = cache
        self.locator = locator
        self.work_dir = Path(work_dir) if work_dir is not None else None

    @staticmethod
    def cache_key(candidates: Sequence[str], toolchain: Toolchain) -> ProbeKey:
        """Cache key of a candidate list for a toolchain."""
        return ProbeKey(toolchain.identity, "flags:" + ";".join(normalize_flags(candidates)))

    def probe(
        self,
        candidates: Sequence[str],
        toolchain: Toolchain,
        *,
        force_refresh: bool = False,
    ) -> list[str]:
        """Return the candidates the toolchain's compiler accepts.

        Args:
            candidates: Flags to check, in the order they should be used.
            toolchain: Compiler to check against.
            force_refresh: Ignore any cached result and probe again.

        Returns:
            Supported flags, in input order. Empty for unsupported
            compiler families (no compiler is invoked then). Also empty,
            and not cached, when the compiler cannot be started.

        Raises:
            ToolNotFoundError: If the compiler driver cannot be found.
        """
        if not toolchain.is_supported:
            logger.warning("Compiler (%s) not supported!", toolchain.family.value)
            return []

        key = self.cache_key(candidates, toolchain)
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Using cached flag check for %s", toolchain)
                return list(cached.values)
        else:
            self.cache.invalidate(key)

        compiler = self.compiler_path(toolchain)
        try:
            supported = [
                flag
                for flag in normalize_flags(candidates)
                if self._check_flag(compiler, toolchain, flag)
            ]
        except OSError as e:
            # Not a verdict on the flags, so nothing is cached
            logger.warning("Could not run compiler %s: %s", compiler, e)
            return []

        self.cache.put(key, ProbeResult(key, supported=True, values=tuple(supported)))
        logger.info(
            "%d of %d flags supported by %s",
            len(supported),
            len(normalize_flags(candidates)),
            toolchain,
        )
        return supported

    def check_flag(self, flag: str, toolchain: Toolchain) -> bool:
        """Check one flag without touching the cache."""
        if not toolchain.is_supported:
            return False
        try:
            return self._check_flag(self.compiler_path(toolchain), toolchain, flag)
        except OSError as e:
            logger.warning("Could not run compiler: %s", e)
            return False

    def compiler_path(self, toolchain: Toolchain) -> Path:
        """Resolve the compiler driver of a toolchain.

        Raises:
            ToolNotFoundError: If it cannot be found.
        """
        return self.locator.require(toolchain.compiler_candidates())

    def _check_flag(self, compiler: Path, toolchain: Toolchain, flag: str) -> bool:
        suffix, source = PROBE_SOURCES[toolchain.language]
        # -Werror turns "unknown option" warnings into a failing exit status
        ok = self._compile(compiler, source, suffix, ["-Werror", flag], link=False)
        logger.debug("Flag %s: %s", flag, "supported" if ok else "not supported")
        return ok

    def check_source_compiles(
        self,
        source: str,
        toolchain: Toolchain,
        *,
        flags: Sequence[str] = (),
        link: bool = True,
    ) -> bool:
        """Check whether a translation unit builds.

        Args:
            source: Source code.
            toolchain: Compiler to use.
            flags: Extra compiler (and linker) arguments.
            link: Also link an executable.

        Returns:
            True if the compiler exits successfully.
        """
        if not toolchain.is_supported:
            logger.warning("Compiler (%s) not supported!", toolchain.family.value)
            return False
        suffix, _ = PROBE_SOURCES[toolchain.language]
        try:
            return self._compile(
                self.compiler_path(toolchain), source, suffix, list(flags), link=link
            )
        except OSError as e:
            logger.warning("Could not run compiler: %s", e)
            return False

    def _compile(
        self,
        compiler: Path,
        source: str,
        suffix: str,
        args: list[str],
        *,
        link: bool,
    ) -> bool:
        if self.work_dir is not None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=self.work_dir) as tmp:
            # Paths in cmd must hold with cwd=tmp_dir
            tmp_dir = Path(tmp).resolve()
            src = tmp_dir / f"probe{suffix}"
            src.write_text(source)
            out = tmp_dir / ("probe" if link else "probe.o")
            cmd = [str(compiler), *args]
            if not link:
                cmd.append("-c")
            cmd += [str(src), "-o", str(out)]
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, cwd=tmp_dir)
            except OSError as e:
                logger.debug("Compiler failed to start: %s", e)
                raise
            return result.returncode == 0


def check_atomics_support(
    runner: FlagProbeRunner,
    toolchain: Toolchain,
    *,
    std_flag: str | None = None,
    flags: Sequence[str] = (),
    definitions: Sequence[str] = (),
    link_flags: Sequence[str] = (),
) -> bool:
    """Check that the compiler provides std::atomic without libatomic.

    Both the int/short/char and the 64-bit variant must build. When this
    returns False the target needs to link against something like
    libatomic. The result is recomputed on every call.

    Args:
        runner: Probe runner to compile with.
        toolchain: C++ toolchain.
        std_flag: Language standard flag, e.g. '-std=c++17'.
        flags: Compiler flags of the target.
        definitions: Preprocessor definitions of the target (without -D).
        link_flags: Linker options of the target.

    Returns:
        True if both programs build.
    """
    args: list[str] = []
    if std_flag:
        args.append(std_flag)
    args.extend(flags)
    args.extend(f"-D{d}" for d in definitions)
    args.extend(link_flags)

    atomics = runner.check_source_compiles(ATOMICS_SOURCE, toolchain, flags=args)
    atomics64 = runner.check_source_compiles(ATOMICS64_SOURCE, toolchain, flags=args)
    logger.debug("Compiler atomics: %s, atomics64: %s", atomics, atomics64)
    return atomics and atomics64
