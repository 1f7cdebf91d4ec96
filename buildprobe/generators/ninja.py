# SPDX-License-Identifier: MIT
"""Ninja generator for the build graph.

Each command step becomes a build edge running its commands through the
shell. The edge's main output is a stamp file that is never written, so
the step runs every time it is requested (like a custom target), and its
byproducts are implicit outputs. Every step id is a phony alias, and
aggregate steps are phony edges over their dependencies.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from buildprobe.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from buildprobe.targets.pipeline import BuildGraph, PipelineStep

STAMP_DIR = ".buildprobe_steps"


class NinjaGenerator(BaseGenerator):
    """Generator that writes the build graph as a ninja file.

    Usage:
        generator = NinjaGenerator()
        generator.generate(ctx.graph, ctx.binary_dir)
        # Creates build/build.ninja, then: ninja -C build coverage_report
    """

    def __init__(self, *, output_filename: str = "build.ninja") -> None:
        super().__init__("ninja", output_filename)

    def generate(self, graph: BuildGraph, output_dir: Path) -> Path:
        """Generate the ninja file.

        Raises:
            ConfigureError: If the graph is not valid.
            DependencyCycleError: If the graph has a cycle.
        """
        graph.validate()
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = self.output_path(output_dir)

        with open(output_file, "w") as f:
            self._write_header(f)
            for step in graph.topological_order():
                if step.is_aggregate:
                    self._write_aggregate(f, step)
                else:
                    self._write_step(f, step)
        return output_file

    def _write_header(self, f: TextIO) -> None:
        f.write("# Generated by buildprobe - do not edit\n")
        f.write("ninja_required_version = 1.7\n")
        f.write("builddir = .\n\n")
        f.write("rule step\n")
        f.write("  command = $cmd\n")
        f.write("  description = $desc\n")
        f.write("  pool = console\n\n")

    def _write_step(self, f: TextIO, step: PipelineStep) -> None:
        stamp = self._escape_path(Path(STAMP_DIR) / step.id)
        outputs = stamp
        if step.byproducts:
            outputs += " | " + " ".join(self._escape_path(p) for p in step.byproducts)
        line = f"build {outputs}: step"
        if step.depends_on:
            line += " || " + " ".join(self._escape_path(Path(d)) for d in step.depends_on)
        f.write(line + "\n")
        f.write(f"  cmd = {self._escape_value(self._command_line(step))}\n")
        f.write(f"  desc = {self._escape_value(step.description or step.id)}\n")
        f.write(f"build {self._escape_path(Path(step.id))}: phony {stamp}\n\n")

    def _write_aggregate(self, f: TextIO, step: PipelineStep) -> None:
        deps = " ".join(self._escape_path(Path(d)) for d in step.depends_on)
        f.write(f"build {self._escape_path(Path(step.id))}: phony {deps}".rstrip() + "\n\n")

    def _command_line(self, step: PipelineStep) -> str:
        env = [f"{key}={value}" for key, value in step.env.items()]
        prefix = ["env", *env] if env else []
        parts = [shlex.join([*prefix, *cmd]) for cmd in step.commands]
        if step.working_dir is not None:
            parts.insert(0, shlex.join(["cd", str(step.working_dir)]))
        line = " && ".join(parts) if parts else "true"
        if step.tolerate_failure:
            line += " || exit 0"
        return line

    def _escape_value(self, value: str) -> str:
        return value.replace("$", "$$").replace("\n", " ")

    def _escape_path(self, path: Path) -> str:
        """Escape a path for use in a build line."""
        return str(path).replace("$", "$$").replace(" ", "$ ").replace(":", "$:")
