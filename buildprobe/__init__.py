# SPDX-License-Identifier: MIT
"""
buildprobe: compiler probing and build helper steps for C and C++ projects.

buildprobe finds out which compiler and linker flags a toolchain
accepts (caching the answers between runs), applies flag sets to target
descriptions, and builds small graphs of external tool invocations such
as coverage reports and clang-format runs.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
from buildprobe.configure.cache import ProbeCache, ProbeKey, ProbeResult  # noqa: E402
from buildprobe.configure.context import ConfigureContext  # noqa: E402
from buildprobe.configure.locator import ToolHandle, ToolLocator  # noqa: E402
from buildprobe.configure.probe import FlagProbeRunner  # noqa: E402
from buildprobe.configure.settings import Settings, get_var  # noqa: E402
from buildprobe.targets.configurator import (  # noqa: E402
    ConfigurationRequest,
    TargetConfigurator,
)
from buildprobe.targets.pipeline import (  # noqa: E402
    BuildGraph,
    PipelineBuilder,
    PipelineExecutor,
)

# Public API exports
__all__ = [
    # Version
    "__version__",
    # Variable access
    "get_var",
    # Core classes
    "BuildGraph",
    "ConfigurationRequest",
    "ConfigureContext",
    "FlagProbeRunner",
    "PipelineBuilder",
    "PipelineExecutor",
    "ProbeCache",
    "ProbeKey",
    "ProbeResult",
    "Settings",
    "TargetConfigurator",
    "ToolHandle",
    "ToolLocator",
]
