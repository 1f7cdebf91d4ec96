# SPDX-License-Identifier: MIT
"""Mermaid diagram generator for the build graph.

Generates Mermaid flowchart syntax showing how pipeline steps depend on
each other. Output can be rendered in GitHub markdown, documentation
tools, or the Mermaid live editor (https://mermaid.live).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from buildprobe.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from buildprobe.targets.pipeline import BuildGraph, PipelineStep


class MermaidGenerator(BaseGenerator):
    """Generator that produces Mermaid flowchart diagrams.

    Example output:
        ```mermaid
        flowchart LR
          coverage_cleanup[coverage_cleanup]
          coverage_setup[coverage_setup]
          coverage_report{{coverage_report}}
          coverage_cleanup --> coverage_setup
        ```

    Usage:
        generator = MermaidGenerator()
        generator.generate(ctx.graph, Path("build"))
        # Creates build/steps.mmd
    """

    def __init__(
        self,
        *,
        direction: str = "LR",
        title: str = "buildprobe steps",
        output_filename: str = "steps.mmd",
    ) -> None:
        """Initialize the Mermaid generator.

        Args:
            direction: Graph direction - "LR" (left-right), "TB" (top-bottom),
                      "RL" (right-left), or "BT" (bottom-top).
            title: Diagram title.
            output_filename: Name of the output file.
        """
        super().__init__("mermaid", output_filename)
        self._direction = direction
        self._title = title

    def generate(self, graph: BuildGraph, output_dir: Path) -> Path:
        """Generate the Mermaid diagram file."""
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = self.output_path(output_dir)

        with open(output_file, "w") as f:
            self._write_header(f)
            self._write_graph(f, graph)
        return output_file

    def _write_header(self, f: TextIO) -> None:
        f.write("---\n")
        f.write(f"title: {self._title}\n")
        f.write("---\n")
        f.write(f"flowchart {self._direction}\n")

    def _write_graph(self, f: TextIO, graph: BuildGraph) -> None:
        steps = graph.steps
        if not steps:
            f.write("  empty[No steps]\n")
            return

        for step in steps:
            opening, closing = self._get_step_shape(step)
            f.write(f"  {self._sanitize_id(step.id)}{opening}{step.id}{closing}\n")

        f.write("\n")

        for step in steps:
            step_id = self._sanitize_id(step.id)
            for dep in step.depends_on:
                f.write(f"  {self._sanitize_id(dep)} --> {step_id}\n")

    def _get_step_shape(self, step: PipelineStep) -> tuple[str, str]:
        """Get Mermaid shape brackets for a step.

        Returns:
            Tuple of (opening, closing) brackets.
        """
        if step.is_aggregate:
            return ("{{", "}}")  # Hexagon for aggregates
        if step.tolerate_failure:
            return ("([", "])")  # Stadium for steps allowed to fail
        return ("[", "]")

    def _sanitize_id(self, name: str) -> str:
        """Sanitize a name for use as a Mermaid node ID."""
        result = name.replace("/", "_").replace("\\", "_")
        result = result.replace(".", "_").replace("-", "_")
        result = result.replace(" ", "_").replace(":", "_")
        # Ensure it starts with a letter
        if result and result[0].isdigit():
            result = "n" + result
        return result
