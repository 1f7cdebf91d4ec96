# SPDX-License-Identifier: MIT
"""Tests for buildprobe.configure.settings."""

import json
from pathlib import Path

import pytest

from buildprobe.configure.settings import Settings, get_var, parse_bool
from buildprobe.core.build_type import BuildType
from buildprobe.core.errors import ConfigureError, InvalidBuildTypeError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "BUILDPROBE_VARS",
        "BUILDPROBE_BUILD_TYPE",
        "BUILDPROBE_MULTI_CONFIG",
        "BUILDPROBE_CONFIGURATION_TYPES",
        "BUILDPROBE_WARNINGS_AS_ERRORS",
        "BUILDPROBE_FORCE_PROBE_REFRESH",
        "BUILDPROBE_FORCE_COVERAGE_FLAGS_FOR_GCOV",
        "BUILDPROBE_USE_CPPCHECK",
        "BUILDPROBE_SOURCE_DIR",
        "BUILDPROBE_BUILD_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


class TestGetVar:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("MY_VAR", "env")
        assert get_var("MY_VAR") == "env"

    def test_default(self):
        assert get_var("BUILDPROBE_TEST_UNSET_VAR", default="x") == "x"

    def test_command_line_wins(self, monkeypatch):
        monkeypatch.setenv("MY_VAR", "env")
        monkeypatch.setenv("BUILDPROBE_VARS", json.dumps({"MY_VAR": "cli"}))
        assert get_var("MY_VAR") == "cli"

    def test_malformed_vars_ignored(self, monkeypatch):
        monkeypatch.setenv("MY_VAR", "env")
        monkeypatch.setenv("BUILDPROBE_VARS", "{broken")
        assert get_var("MY_VAR") == "env"


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "ON", "true", "Yes", True])
    def test_true(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "off", "FALSE", "no", "", False])
    def test_false(self, value):
        assert parse_bool(value) is False

    def test_invalid(self):
        with pytest.raises(ConfigureError):
            parse_bool("maybe", "use_cppcheck")


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.build_type is None
        assert settings.use_cppcheck is True
        assert settings.warnings_as_errors is False
        assert BuildType.COVERAGE not in settings.configuration_types
        assert settings.binary_dir == Path("build")

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BUILDPROBE_BUILD_TYPE", "Coverage")
        monkeypatch.setenv("BUILDPROBE_WARNINGS_AS_ERRORS", "ON")
        monkeypatch.setenv("BUILDPROBE_USE_CPPCHECK", "off")
        monkeypatch.setenv("BUILDPROBE_BUILD_DIR", str(tmp_path / "out"))

        settings = Settings.from_env()
        assert settings.build_type is BuildType.COVERAGE
        assert settings.warnings_as_errors is True
        assert settings.use_cppcheck is False
        assert settings.binary_dir == tmp_path / "out"
        assert settings.is_coverage_build

    def test_from_env_command_line_variables(self, monkeypatch):
        monkeypatch.setenv("BUILDPROBE_BUILD_TYPE", "Release")
        monkeypatch.setenv("BUILDPROBE_VARS", json.dumps({"BUILDPROBE_BUILD_TYPE": "Debug"}))
        assert Settings.from_env().build_type is BuildType.DEBUG

    def test_from_env_invalid_build_type(self, monkeypatch):
        monkeypatch.setenv("BUILDPROBE_BUILD_TYPE", "Fastest")
        with pytest.raises(InvalidBuildTypeError):
            Settings.from_env()

    def test_configuration_types_list(self):
        settings = Settings.from_mapping(
            {"multi_config": True, "configuration_types": "Debug;Release,Coverage"}
        )
        assert settings.configuration_types == [
            BuildType.DEBUG,
            BuildType.RELEASE,
            BuildType.COVERAGE,
        ]
        assert settings.is_coverage_build

    def test_from_file(self, tmp_path):
        path = tmp_path / "buildprobe.toml"
        path.write_text(
            "[buildprobe]\n"
            'build_type = "RelWithDebInfo"\n'
            "force_probe_refresh = true\n"
            'build_dir = "out"\n'
        )
        settings = Settings.from_file(path)
        assert settings.build_type is BuildType.REL_WITH_DEB_INFO
        assert settings.force_probe_refresh is True
        assert settings.binary_dir == Path("out")

    def test_from_file_top_level_keys(self, tmp_path):
        path = tmp_path / "buildprobe.toml"
        path.write_text("multi_config = true\n")
        assert Settings.from_file(path).multi_config is True

    def test_from_file_errors(self, tmp_path):
        with pytest.raises(ConfigureError):
            Settings.from_file(tmp_path / "missing.toml")

        bad = tmp_path / "bad.toml"
        bad.write_text("this is = = not toml")
        with pytest.raises(ConfigureError):
            Settings.from_file(bad)

    def test_is_coverage_build_single_config(self):
        assert not Settings(build_type=BuildType.DEBUG).is_coverage_build
        assert Settings(build_type=BuildType.COVERAGE).is_coverage_build
