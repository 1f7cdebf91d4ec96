# SPDX-License-Identifier: MIT
"""Build graph of external tool invocations.

A BuildGraph holds PipelineSteps: commands with a working directory,
environment, declared byproducts and dependencies on other steps.
Aggregate steps run nothing and only group other steps under a name
(e.g. 'coverage_report'). The graph is explicit and validated for
acyclicity; PipelineExecutor runs the dependency closure of an entry
point in order, and the generators write it out for ninja or as a
Mermaid diagram.

PipelineBuilder creates the coverage report pipeline of an executable:

    coverage_cleanup -> coverage_setup -> coverage_run-<t>
        -> coverage_processing-<t> -> coverage_report-<t> -> coverage_report
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from buildprobe.core.errors import (
    ConfigureError,
    DependencyCycleError,
    ToolInvocationError,
    ToolNotFoundError,
)
from buildprobe.core.target import TargetKind
from buildprobe.core.toolchain import ToolchainFamily

if TYPE_CHECKING:
    from buildprobe.configure.context import ConfigureContext
    from buildprobe.configure.locator import ToolLocator
    from buildprobe.core.target import TargetSpec

logger = logging.getLogger(__name__)

COVERAGE_REPORT_ALL = "coverage_report"
COVERAGE_SETUP = "coverage_setup"
COVERAGE_CLEANUP = "coverage_cleanup"
COVERAGE_WORK_DIR = ".tmp_coverage"

NO_COVERAGE_TARGETS = "Targets to generate coverage reports will not be available!"


class StepKind(Enum):
    """What a step does when it runs."""

    COMMAND = "command"
    AGGREGATE = "aggregate"


@dataclass
class PipelineStep:
    """One node of the build graph.

    Attributes:
        id: Unique step name; also the name users build.
        commands: Command lines run in order.
        depends_on: Ids of steps that must complete first.
        byproducts: Files or directories the step produces.
        working_dir: Directory the commands run in (default: current).
        env: Extra environment variables for the commands.
        tolerate_failure: A non-zero exit is logged instead of raised.
        kind: COMMAND or AGGREGATE.
        description: Short text shown while the step runs.
    """

    id: str
    commands: list[list[str]] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)
    byproducts: list[Path] = field(default_factory=list)
    working_dir: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    tolerate_failure: bool = False
    kind: StepKind = StepKind.COMMAND
    description: str = ""

    @property
    def is_aggregate(self) -> bool:
        return self.kind is StepKind.AGGREGATE

    def __hash__(self) -> int:
        return hash(self.id)


def aggregate(step_id: str, depends_on: Sequence[str] = ()) -> PipelineStep:
    """Create an aggregate step that groups ``depends_on``."""
    return PipelineStep(step_id, depends_on=list(depends_on), kind=StepKind.AGGREGATE)


def helper_command(command: str, *args: Path | str) -> list[str]:
    """Command line running one of the portable helpers in buildprobe.util.commands."""
    return [sys.executable, "-m", "buildprobe.util.commands", command, *map(str, args)]


class BuildGraph:
    """All pipeline steps of one configuration pass.

    Steps are shared between registrations: helpers that need a common
    step (a setup step or an 'all' aggregate) use get_or_add() so the
    step is created only once.
    """

    def __init__(self) -> None:
        self._steps: dict[str, PipelineStep] = {}

    @property
    def steps(self) -> list[PipelineStep]:
        """Steps in insertion order."""
        return list(self._steps.values())

    def get(self, step_id: str) -> PipelineStep | None:
        return self._steps.get(step_id)

    def add_step(self, step: PipelineStep) -> PipelineStep:
        """Add a new step.

        Raises:
            ConfigureError: If a step with the same id exists.
        """
        if step.id in self._steps:
            raise ConfigureError(f"Step '{step.id}' is already defined")
        self._steps[step.id] = step
        return step

    def get_or_add(self, step_id: str, factory: Callable[[], PipelineStep]) -> PipelineStep:
        """Return the step ``step_id``, creating it with ``factory`` if missing."""
        step = self._steps.get(step_id)
        if step is None:
            step = factory()
            if step.id != step_id:
                raise ConfigureError(f"Factory for '{step_id}' created '{step.id}'")
            self._steps[step_id] = step
        return step

    def attach(self, aggregate_id: str, step_id: str) -> None:
        """Make an existing aggregate depend on a step."""
        agg = self._steps.get(aggregate_id)
        if agg is None:
            raise ConfigureError(f"Unknown step: {aggregate_id}")
        if step_id not in agg.depends_on:
            agg.depends_on.append(step_id)

    def validate(self) -> None:
        """Check that every dependency exists and there are no cycles.

        Raises:
            ConfigureError: On a dependency on an unknown step.
            DependencyCycleError: On a cycle.
        """
        for step in self._steps.values():
            for dep in step.depends_on:
                if dep not in self._steps:
                    raise ConfigureError(f"Step '{step.id}' depends on unknown step '{dep}'")
        self._order(list(self._steps))

    def topological_order(self, entry: str | None = None) -> list[PipelineStep]:
        """Steps ordered so that dependencies come first.

        Args:
            entry: Only include this step and what it depends on
                (default: every step).

        Raises:
            ConfigureError: If ``entry`` or a dependency is unknown.
            DependencyCycleError: On a cycle.
        """
        if entry is None:
            roots = list(self._steps)
        elif entry in self._steps:
            roots = [entry]
        else:
            raise ConfigureError(f"Unknown step: {entry}")
        return [self._steps[step_id] for step_id in self._order(roots)]

    def _order(self, roots: list[str]) -> list[str]:
        # Depth-first post-order; 'visiting' holds the current path
        order: list[str] = []
        done: set[str] = set()
        visiting: list[str] = []

        def visit(step_id: str) -> None:
            if step_id in done:
                return
            if step_id in visiting:
                cycle = visiting[visiting.index(step_id) :] + [step_id]
                raise DependencyCycleError(cycle)
            step = self._steps.get(step_id)
            if step is None:
                raise ConfigureError(f"Unknown step: {step_id}")
            visiting.append(step_id)
            for dep in step.depends_on:
                visit(dep)
            visiting.pop()
            done.add(step_id)
            order.append(step_id)

        for root in roots:
            visit(root)
        return order

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def __iter__(self) -> Iterator[PipelineStep]:
        return iter(self._steps.values())

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"BuildGraph({len(self._steps)} steps)"


class PipelineExecutor:
    """Runs steps of a BuildGraph.

    Commands are run without a shell. A failing command stops the run
    with ToolInvocationError, unless its step tolerates failure.
    """

    def __init__(self, graph: BuildGraph, *, env: dict[str, str] | None = None) -> None:
        self.graph = graph
        self.env = env

    def run(self, entry: str) -> list[str]:
        """Run ``entry`` and everything it depends on.

        Each step runs at most once per call.

        Returns:
            Ids of the steps that ran, in order.

        Raises:
            ToolInvocationError: If a step fails.
            ConfigureError: If the graph is invalid.
        """
        self.graph.validate()
        executed: list[str] = []
        for step in self.graph.topological_order(entry):
            if not step.is_aggregate:
                self._run_step(step)
            executed.append(step.id)
        return executed

    def _run_step(self, step: PipelineStep) -> None:
        logger.info("Running %s", step.description or step.id)
        env = dict(self.env if self.env is not None else os.environ)
        env.update(step.env)
        if step.working_dir is not None:
            step.working_dir.mkdir(parents=True, exist_ok=True)

        for cmd in step.commands:
            logger.debug("  %s", " ".join(cmd))
            try:
                result = subprocess.run(
                    cmd,
                    cwd=step.working_dir,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    text=True,
                )
            except OSError as e:
                if step.tolerate_failure:
                    logger.warning("Step '%s' could not start %s: %s", step.id, cmd[0], e)
                    continue
                raise ToolInvocationError(
                    f"Step '{step.id}' could not start {cmd[0]}: {e}", command=cmd
                ) from e

            if result.returncode != 0:
                if step.tolerate_failure:
                    logger.warning(
                        "Step '%s' exited with status %d, continuing",
                        step.id,
                        result.returncode,
                    )
                    continue
                raise ToolInvocationError(
                    f"Step '{step.id}' failed",
                    command=cmd,
                    returncode=result.returncode,
                    stderr=result.stderr,
                )


@dataclass(frozen=True)
class CoverageTools:
    """LLVM tools used by the coverage pipeline.

    llvm-cov and llvm-profdata are required, llvm-cxxfilt is optional.
    """

    llvm_cov: Path | None = None
    llvm_profdata: Path | None = None
    llvm_cxxfilt: Path | None = None

    @classmethod
    def locate(cls, locator: ToolLocator) -> CoverageTools:
        return cls(
            llvm_cov=locator.resolve("llvm-cov").path,
            llvm_profdata=locator.resolve("llvm-profdata").path,
            llvm_cxxfilt=locator.resolve("llvm-cxxfilt").path,
        )


@dataclass
class PipelineGraph:
    """The coverage pipeline of one target.

    Attributes:
        target: Name of the registered target.
        steps: Command steps in execution order, the shared cleanup and
            setup steps included.
        entry_points: Named steps users build: 'target' is the report
            of this target, 'all' the shared report aggregate.
        report_dir: Directory receiving the HTML report.
    """

    target: str
    steps: list[PipelineStep]
    entry_points: dict[str, str]
    report_dir: Path

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]


class PipelineBuilder:
    """Adds coverage report pipelines to a context's build graph.

    The report is based on clang's source-based code coverage: the
    instrumented binary is run with LLVM_PROFILE_FILE set, the raw
    profile is merged with llvm-profdata and rendered with llvm-cov.

    Example:
        builder = PipelineBuilder(ctx)
        builder.build_coverage_graph(tests, additional_args=["--quiet"])
        PipelineExecutor(ctx.graph).run("coverage_report")
    """

    def __init__(self, context: ConfigureContext) -> None:
        self.context = context
        self._tools: CoverageTools | None = None

    @property
    def graph(self) -> BuildGraph:
        return self.context.graph

    def build_coverage_graph(
        self,
        target: TargetSpec | None,
        additional_args: Sequence[str] = (),
        additional_objects: Sequence[Path | str] = (),
        exclude_filters: Sequence[str] = (),
    ) -> PipelineGraph | None:
        """Register a target for coverage reports.

        Args:
            target: Executable to run for the report.
            additional_args: Arguments passed to the executable.
            additional_objects: Extra objects (libraries, object files)
                to report coverage for.
            exclude_filters: Regexes of source files left out of the
                report. When given the report is written twice, to
                'full' (no filtering) and 'filtered'.

        Returns:
            The target's pipeline, or None when coverage reports are not
            available (not a Coverage build, not Clang, or LLVM tools
            missing).

        Raises:
            ConfigureError: If no target is given or it is not an
                executable.
        """
        if target is None or not target.name:
            raise ConfigureError("TARGET argument required!")
        if target.kind is not TargetKind.EXECUTABLE:
            raise ConfigureError(f"{target.name} is not an executable!")

        settings = self.context.settings
        if not settings.is_coverage_build:
            logger.info(
                "Build type is not 'Coverage' which is needed to generate coverage reports."
            )
            logger.info(NO_COVERAGE_TARGETS)
            return None

        if not self._uses_clang():
            logger.info("Coverage reports can only be generated when the Clang compiler is used.")
            logger.info(NO_COVERAGE_TARGETS)
            return None

        tools = self._coverage_tools()
        llvm_cov, llvm_profdata = tools.llvm_cov, tools.llvm_profdata
        if llvm_cov is None or llvm_profdata is None:
            logger.warning(
                "Unable to find required tools to generate coverage reports:\n"
                "llvm-cov: %s\nllvm-profdata: %s\nllvm-cxxfilt (optional): %s",
                llvm_cov or "NOTFOUND",
                llvm_profdata or "NOTFOUND",
                tools.llvm_cxxfilt or "NOTFOUND",
            )
            logger.info(NO_COVERAGE_TARGETS)
            return None

        name = target.name
        binary_dir = self.context.binary_dir
        work_dir = binary_dir / COVERAGE_WORK_DIR
        raw_file = work_dir / f"{name}.profraw"
        data_file = work_dir / f"{name}.profdata"
        report_dir = binary_dir / f"coverage-{name}"
        binary = target.output_file(binary_dir)

        cleanup = self.graph.get_or_add(
            COVERAGE_CLEANUP,
            lambda: PipelineStep(
                COVERAGE_CLEANUP,
                commands=[helper_command("remove", work_dir)],
                description="Removing coverage working directory",
            ),
        )
        setup = self.graph.get_or_add(
            COVERAGE_SETUP,
            lambda: PipelineStep(
                COVERAGE_SETUP,
                commands=[helper_command("mkdir", work_dir)],
                depends_on=[COVERAGE_CLEANUP],
                byproducts=[work_dir],
                description="Creating coverage working directory",
            ),
        )

        # A failing run (e.g. a failed test) still yields usable profile data
        run = self.graph.add_step(
            PipelineStep(
                f"coverage_run-{name}",
                commands=[[str(binary), *additional_args]],
                depends_on=[setup.id],
                byproducts=[raw_file],
                working_dir=binary_dir,
                env={"LLVM_PROFILE_FILE": str(raw_file)},
                tolerate_failure=True,
                description=f"Running {name} for coverage",
            )
        )
        merge = self.graph.add_step(
            PipelineStep(
                f"coverage_processing-{name}",
                commands=[
                    [str(llvm_profdata), "merge", "-sparse", str(raw_file), "-o", str(data_file)]
                ],
                depends_on=[run.id],
                byproducts=[data_file],
                description=f"Merging coverage data of {name}",
            )
        )

        show = [
            str(llvm_cov),
            "show",
            str(binary),
            f"-object={binary}",
            *(f"-object={obj}" for obj in additional_objects),
            f"-instr-profile={data_file}",
            "-show-line-counts-or-regions",
        ]
        demangler = ["-Xdemangler", str(tools.llvm_cxxfilt)] if tools.llvm_cxxfilt else []

        report_id = f"{COVERAGE_REPORT_ALL}-{name}"
        if not exclude_filters:
            reports = [
                self.graph.add_step(
                    PipelineStep(
                        report_id,
                        commands=[[*show, f"-output-dir={report_dir}", "-format=html", *demangler]],
                        depends_on=[merge.id],
                        byproducts=[report_dir],
                        working_dir=binary_dir,
                        description=f"Generating coverage report of {name}",
                    )
                )
            ]
        else:
            ignore = [f"-ignore-filename-regex={regex}" for regex in exclude_filters]
            reports = []
            for variant, extra in (("full", []), ("filtered", ignore)):
                out_dir = report_dir / variant
                reports.append(
                    self.graph.add_step(
                        PipelineStep(
                            f"{report_id}-{variant}",
                            commands=[
                                [*show, f"-output-dir={out_dir}", "-format=html", *demangler, *extra]
                            ],
                            depends_on=[merge.id],
                            byproducts=[out_dir],
                            working_dir=binary_dir,
                            description=f"Generating {variant} coverage report of {name}",
                        )
                    )
                )
            self.graph.add_step(aggregate(report_id, [step.id for step in reports]))

        self.graph.get_or_add(COVERAGE_REPORT_ALL, lambda: aggregate(COVERAGE_REPORT_ALL))
        self.graph.attach(COVERAGE_REPORT_ALL, report_id)
        self.graph.validate()

        logger.debug("Registered %s for coverage reports", name)
        return PipelineGraph(
            target=name,
            steps=[cleanup, setup, run, merge, *reports],
            entry_points={"target": report_id, "all": COVERAGE_REPORT_ALL},
            report_dir=report_dir,
        )

    def _uses_clang(self) -> bool:
        for language in ("cxx", "c"):
            try:
                toolchain = self.context.toolchain(language)
            except ToolNotFoundError:
                continue
            if toolchain.family is ToolchainFamily.CLANG:
                return True
        return False

    def _coverage_tools(self) -> CoverageTools:
        if self._tools is None:
            self._tools = CoverageTools.locate(self.context.locator)
            for tool_name, path in (
                ("llvm-cov", self._tools.llvm_cov),
                ("llvm-profdata", self._tools.llvm_profdata),
                ("llvm-cxxfilt", self._tools.llvm_cxxfilt),
            ):
                if path is not None:
                    logger.debug("Found %s: %s", tool_name, path)
        return self._tools
