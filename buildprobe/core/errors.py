# SPDX-License-Identifier: MIT
"""Custom exceptions for buildprobe.

All buildprobe exceptions inherit from BuildProbeError. Anything raised
from this hierarchy halts the configuration pass; degraded-but-usable
situations (missing optional tools, unsupported compilers) are reported
as log warnings instead.
"""

from __future__ import annotations

from collections.abc import Sequence


class BuildProbeError(Exception):
    """Base class for all buildprobe exceptions.

    Attributes:
        message: The error message.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigureError(BuildProbeError):
    """Fatal misconfiguration.

    Raised for missing required arguments, target-kind mismatches,
    in-source builds and similar problems that must never be papered
    over with a default.
    """


class InvalidBuildTypeError(ConfigureError):
    """The requested build type is not one of the known build types.

    Attributes:
        build_type: The rejected value.
        valid: The accepted values.
    """

    def __init__(self, build_type: str, valid: Sequence[str]) -> None:
        self.build_type = build_type
        self.valid = list(valid)
        choices = " | ".join(self.valid)
        super().__init__(f"Invalid build type: '{build_type}' [{choices}]")


class ToolNotFoundError(ConfigureError):
    """Required tool was not found.

    Attributes:
        tool: The name of the tool that was not found.
    """

    def __init__(self, tool: str, message: str | None = None) -> None:
        self.tool = tool
        super().__init__(message or f"tool not found: {tool}")


class ToolInvocationError(BuildProbeError):
    """A required external tool exited with a non-zero status.

    Attributes:
        command: The command line that was run.
        returncode: Exit status of the tool.
        stderr: Captured standard error output.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        details = message
        if returncode is not None:
            details += f" (exit status {returncode})"
        if stderr:
            details += f"\n{stderr.rstrip()}"
        super().__init__(details)


class DependencyCycleError(BuildProbeError):
    """Circular dependency detected in the build graph.

    Attributes:
        cycle: The step ids forming the cycle.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"dependency cycle: {cycle_str}")
