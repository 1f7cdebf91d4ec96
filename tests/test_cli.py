# SPDX-License-Identifier: MIT
"""Tests for buildprobe CLI."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from buildprobe.cli import build_parser, main, parse_variables, setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # -D variables are exported to BUILDPROBE_VARS; restore it after each test
    monkeypatch.setenv("BUILDPROBE_VARS", "{}")
    for name in ("BUILDPROBE_BUILD_TYPE", "BUILDPROBE_MULTI_CONFIG", "BUILDPROBE_BUILD_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def dirs(tmp_path: Path) -> list[str]:
    source = tmp_path / "src"
    source.mkdir()
    return ["-S", str(source), "-B", str(tmp_path / "build")]


class TestParseVariables:
    """Tests for parse_variables function."""

    def test_parse_simple_variable(self) -> None:
        """Test parsing a simple KEY=value."""
        variables, remaining = parse_variables(["FOO=bar"])
        assert variables == {"FOO": "bar"}
        assert remaining == []

    def test_parse_multiple_variables(self) -> None:
        """Test parsing multiple variables."""
        variables, remaining = parse_variables(["A=1", "B=2"])
        assert variables == {"A": "1", "B": "2"}
        assert remaining == []

    def test_value_with_equals(self) -> None:
        """Test that only the first '=' splits."""
        variables, _ = parse_variables(["FLAGS=-DX=1"])
        assert variables == {"FLAGS": "-DX=1"}

    def test_non_variables_remain(self) -> None:
        """Test that flags and empty keys are left alone."""
        variables, remaining = parse_variables(["--foo=bar", "=x", "target"])
        assert variables == {}
        assert remaining == ["--foo=bar", "=x", "target"]


class TestSetupLogging:
    def test_levels(self) -> None:
        setup_logging()
        setup_logging(verbose=True)
        setup_logging(debug=True)
        assert logging.getLogger("buildprobe").getEffectiveLevel() <= logging.WARNING


class TestParser:
    def test_commands(self) -> None:
        parser = build_parser()
        for command in ("flags", "linker", "format", "check-format", "graph"):
            args = parser.parse_args([command])
            assert args.command == command
            assert args.build_dir is None

    def test_coverage_arguments(self) -> None:
        args = build_parser().parse_args(
            ["coverage", "tests", "--arg=-v", "--arg=--quick", "--exclude", "third_party/.*"]
        )
        assert args.target == "tests"
        assert args.kind == "Executable"
        assert args.arg == ["-v", "--quick"]
        assert args.exclude == ["third_party/.*"]

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "buildprobe" in capsys.readouterr().out


class TestMain:
    def test_no_command(self, capsys) -> None:
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out

    def test_sanitizers(self, capsys) -> None:
        assert main(["sanitizers", "--address", "--undefined"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert out == ["-fsanitize=address,undefined", "-fno-omit-frame-pointer"]

    def test_sanitizers_none(self, capsys) -> None:
        assert main(["sanitizers"]) == 0
        assert capsys.readouterr().out == ""

    def test_coverage_of_library_fails(self, dirs, caplog) -> None:
        result = main(["coverage", "mylib", "--kind", "Library", *dirs])
        assert result == 1
        assert "mylib is not an executable!" in caplog.text

    def test_coverage_unavailable(self, dirs, tmp_path) -> None:
        result = main(["coverage", "app", "-D", "BUILDPROBE_BUILD_TYPE=Release", *dirs])
        assert result == 1
        assert not (tmp_path / "build" / "build.ninja").exists()

    def test_invalid_build_type(self, dirs, caplog) -> None:
        assert main(["graph", "-D", "BUILDPROBE_BUILD_TYPE=Fastest", *dirs]) == 1
        assert "Invalid build type" in caplog.text

    def test_in_source_build(self, tmp_path) -> None:
        assert main(["graph", "-S", str(tmp_path), "-B", str(tmp_path)]) == 1

    def test_graph(self, dirs, tmp_path, capsys) -> None:
        assert main(["graph", *dirs]) == 0
        out = capsys.readouterr().out.splitlines()
        build = tmp_path / "build"
        assert out == [str(build / "build.ninja"), str(build / "steps.mmd")]
        assert "empty[No steps]" in (build / "steps.mmd").read_text()

    def test_submodule_outside_repository(self, dirs) -> None:
        assert main(["submodule", "external/fmt", *dirs]) == 1
