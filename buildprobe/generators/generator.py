# SPDX-License-Identifier: MIT
"""Generator protocol for build file generation.

Generators take the BuildGraph of a configuration pass and write it out
in another format (a ninja file, a diagram, ...).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from buildprobe.targets.pipeline import BuildGraph


@runtime_checkable
class Generator(Protocol):
    """Protocol for build file generators."""

    @property
    def name(self) -> str:
        """Generator name (e.g., 'ninja', 'mermaid')."""
        ...

    def generate(self, graph: BuildGraph, output_dir: Path) -> Path:
        """Write the graph.

        Args:
            graph: Build graph to write.
            output_dir: Directory to write output files to.

        Returns:
            Path of the written file.
        """
        ...


class BaseGenerator:
    """Base class for generators with common functionality."""

    def __init__(self, name: str, output_filename: str) -> None:
        """Initialize a generator.

        Args:
            name: Generator name.
            output_filename: Name of the file written to the output dir.
        """
        self._name = name
        self._output_filename = output_filename

    @property
    def name(self) -> str:
        return self._name

    def output_path(self, output_dir: Path) -> Path:
        return output_dir / self._output_filename

    def generate(self, graph: BuildGraph, output_dir: Path) -> Path:
        """Generate build files. Subclasses must implement."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
