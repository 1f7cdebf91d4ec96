# SPDX-License-Identifier: MIT
"""Command-line interface for buildprobe."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from buildprobe.configure.context import ConfigureContext
from buildprobe.configure.guards import enforce_out_of_source_build
from buildprobe.configure.linker import check_available_linker
from buildprobe.configure.settings import VAR_PREFIX, Settings
from buildprobe.core.build_type import setup_build_type
from buildprobe.core.errors import BuildProbeError
from buildprobe.core.flags import common_compiler_flags, sanitizer_flags
from buildprobe.core.target import TargetKind, TargetSpec
from buildprobe.generators import MermaidGenerator, NinjaGenerator
from buildprobe.targets.format import CHECK_FORMAT, FORMAT, define_format_targets
from buildprobe.targets.git import update_git_submodule
from buildprobe.targets.pipeline import PipelineBuilder, PipelineExecutor

# Set up logging
logger = logging.getLogger("buildprobe")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def parse_variables(args: list[str]) -> tuple[dict[str, str], list[str]]:
    """Parse KEY=value arguments from a list.

    Args:
        args: List of arguments.

    Returns:
        Tuple of (variables dict, remaining args).
    """
    variables: dict[str, str] = {}
    remaining: list[str] = []

    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, _, value = arg.partition("=")
            if key:  # Valid KEY=value
                variables[key] = value
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)

    return variables, remaining


def make_context(args: argparse.Namespace) -> ConfigureContext:
    """Create the configure context for a command.

    -D KEY=value variables are exported through BUILDPROBE_VARS so that
    get_var() sees them with precedence over the environment.

    Raises:
        ConfigureError: On invalid settings or an in-source build.
    """
    variables, ignored = parse_variables(getattr(args, "define", None) or [])
    for arg in ignored:
        logger.warning("Ignoring malformed variable: %s", arg)
    if variables:
        os.environ[VAR_PREFIX + "VARS"] = json.dumps(variables)

    settings_file = getattr(args, "settings", None)
    settings = Settings.from_file(settings_file) if settings_file else Settings.from_env()
    if getattr(args, "source_dir", None):
        settings.source_dir = Path(args.source_dir)
    if getattr(args, "build_dir", None):
        settings.binary_dir = Path(args.build_dir)

    enforce_out_of_source_build(settings.source_dir, settings.binary_dir)
    setup_build_type(settings)
    settings.binary_dir.mkdir(parents=True, exist_ok=True)

    logger.debug("Source dir: %s", settings.source_dir)
    logger.debug("Build dir: %s", settings.binary_dir)
    return ConfigureContext(settings)


def cmd_flags(args: argparse.Namespace) -> int:
    """Print the flags the compiler supports, one per line."""
    ctx = make_context(args)
    toolchain = ctx.toolchain(args.language)
    candidates = args.flags or common_compiler_flags(
        toolchain, warnings_as_errors=ctx.settings.warnings_as_errors
    )
    for flag in ctx.probe_flags(candidates, toolchain):
        print(flag)
    ctx.save()
    return 0


def cmd_linker(args: argparse.Namespace) -> int:
    """Print the flags selecting the fastest available linker."""
    ctx = make_context(args)
    flags = check_available_linker(ctx)
    if not flags:
        logger.info("No alternative linker found")
    for flag in flags:
        print(flag)
    ctx.save()
    return 0


def cmd_sanitizers(args: argparse.Namespace) -> int:
    """Print the -fsanitize flags for a sanitizer combination."""
    flags = sanitizer_flags(
        address=args.address,
        leak=args.leak,
        undefined_behavior=args.undefined,
        memory=args.memory,
        thread=args.thread,
    )
    for flag in flags:
        print(flag)
    return 0


def cmd_coverage(args: argparse.Namespace) -> int:
    """Register an executable for coverage reports.

    Writes the step graph to build.ninja, or runs the report right away
    with --run.
    """
    ctx = make_context(args)
    target = TargetSpec(args.target, TargetKind(args.kind), output_name=args.binary)
    pipeline = PipelineBuilder(ctx).build_coverage_graph(
        target,
        additional_args=args.arg or [],
        additional_objects=args.object or [],
        exclude_filters=args.exclude or [],
    )
    if pipeline is None:
        return 1

    if args.run:
        PipelineExecutor(ctx.graph).run(pipeline.entry_points["target"])
        print(pipeline.report_dir)
    else:
        ninja_file = NinjaGenerator().generate(ctx.graph, ctx.binary_dir)
        logger.info("Generated %s", ninja_file)
    return 0


def _run_format(args: argparse.Namespace, entry: str) -> int:
    ctx = make_context(args)
    if not define_format_targets(ctx):
        return 1
    PipelineExecutor(ctx.graph).run(entry)
    return 0


def cmd_format(args: argparse.Namespace) -> int:
    """Format all tracked C and C++ files in place."""
    return _run_format(args, FORMAT)


def cmd_check_format(args: argparse.Namespace) -> int:
    """Fail if a tracked C or C++ file is not formatted."""
    return _run_format(args, CHECK_FORMAT)


def cmd_submodule(args: argparse.Namespace) -> int:
    """Check out a git submodule."""
    ctx = make_context(args)
    return 0 if update_git_submodule(ctx, args.path) else 1


def cmd_graph(args: argparse.Namespace) -> int:
    """Write the step graph as ninja and Mermaid files."""
    ctx = make_context(args)
    builder = PipelineBuilder(ctx)
    for name in args.coverage or []:
        builder.build_coverage_graph(TargetSpec(name))
    if args.format_targets:
        define_format_targets(ctx)

    for generator in (NinjaGenerator(), MermaidGenerator()):
        output = generator.generate(ctx.graph, ctx.binary_dir)
        logger.info("Generated %s", output)
        print(output)
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    # None keeps the build dir from the settings file or environment
    parser.add_argument("-B", "--build-dir", help="Build directory (default: build)")


def add_configure_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments for commands that need a configure context."""
    parser.add_argument(
        "-S", "--source-dir", help="Project source directory (default: current dir)"
    )
    parser.add_argument(
        "-D",
        "--define",
        action="append",
        metavar="KEY=VALUE",
        help="Set a build variable (e.g. BUILDPROBE_BUILD_TYPE=Coverage)",
    )
    parser.add_argument("--settings", help="Read settings from a TOML file")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="buildprobe",
        description="Compiler probing and build helper steps for C and C++ projects.",
        epilog="Run 'buildprobe <command> --help' for command-specific help.",
    )
    from buildprobe import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # buildprobe flags
    flags_parser = subparsers.add_parser(
        "flags", help="Print the compiler flags the compiler supports"
    )
    add_common_args(flags_parser)
    add_configure_args(flags_parser)
    flags_parser.add_argument(
        "-l", "--language", choices=["c", "cxx"], default="cxx", help="Language (default: cxx)"
    )
    flags_parser.add_argument(
        "flags", nargs="*", help="Flags to check (default: the common warning flags)"
    )
    flags_parser.set_defaults(func=cmd_flags)

    # buildprobe linker
    linker_parser = subparsers.add_parser("linker", help="Print flags for a faster linker")
    add_common_args(linker_parser)
    add_configure_args(linker_parser)
    linker_parser.set_defaults(func=cmd_linker)

    # buildprobe sanitizers
    san_parser = subparsers.add_parser("sanitizers", help="Print sanitizer flags")
    add_common_args(san_parser)
    san_parser.add_argument("--address", action="store_true", help="AddressSanitizer")
    san_parser.add_argument("--leak", action="store_true", help="LeakSanitizer")
    san_parser.add_argument(
        "--undefined", action="store_true", help="UndefinedBehaviorSanitizer"
    )
    san_parser.add_argument("--memory", action="store_true", help="MemorySanitizer")
    san_parser.add_argument("--thread", action="store_true", help="ThreadSanitizer")
    san_parser.set_defaults(func=cmd_sanitizers)

    # buildprobe coverage
    cov_parser = subparsers.add_parser(
        "coverage", help="Register an executable for coverage reports"
    )
    add_common_args(cov_parser)
    add_configure_args(cov_parser)
    cov_parser.add_argument("target", help="Target name")
    cov_parser.add_argument(
        "--kind",
        choices=[kind.value for kind in TargetKind],
        default=TargetKind.EXECUTABLE.value,
        help="Target kind (default: Executable)",
    )
    cov_parser.add_argument("--binary", help="Binary name in the build dir (default: target)")
    cov_parser.add_argument(
        "--arg", action="append", help="Argument for the executable (repeatable)"
    )
    cov_parser.add_argument(
        "--object", action="append", help="Additional object to report on (repeatable)"
    )
    cov_parser.add_argument(
        "--exclude", action="append", help="Regex of source files to filter out (repeatable)"
    )
    cov_parser.add_argument("--run", action="store_true", help="Generate the report now")
    cov_parser.set_defaults(func=cmd_coverage)

    # buildprobe format / check-format
    format_parser = subparsers.add_parser("format", help="Format tracked C/C++ files")
    add_common_args(format_parser)
    add_configure_args(format_parser)
    format_parser.set_defaults(func=cmd_format)

    check_parser = subparsers.add_parser(
        "check-format", help="Check formatting of tracked C/C++ files"
    )
    add_common_args(check_parser)
    add_configure_args(check_parser)
    check_parser.set_defaults(func=cmd_check_format)

    # buildprobe submodule
    sub_parser = subparsers.add_parser("submodule", help="Check out a git submodule")
    add_common_args(sub_parser)
    add_configure_args(sub_parser)
    sub_parser.add_argument("path", help="Path of the submodule")
    sub_parser.set_defaults(func=cmd_submodule)

    # buildprobe graph
    graph_parser = subparsers.add_parser(
        "graph", help="Write the step graph as ninja and Mermaid files"
    )
    add_common_args(graph_parser)
    add_configure_args(graph_parser)
    graph_parser.add_argument(
        "--coverage", action="append", metavar="TARGET", help="Register an executable"
    )
    graph_parser.add_argument(
        "--format-targets", action="store_true", help="Add the format steps"
    )
    graph_parser.set_defaults(func=cmd_graph)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the buildprobe CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.debug)
    try:
        result: int = args.func(args)
    except BuildProbeError as e:
        logger.error("%s", e.message)
        return 1
    return result


if __name__ == "__main__":
    sys.exit(main())
