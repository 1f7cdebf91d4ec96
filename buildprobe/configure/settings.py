# SPDX-License-Identifier: MIT
"""Configuration surface of a configuration pass.

Settings gathers the few knobs the helpers consume: the build type (or
the configuration types of a multi-config generator) and a handful of
boolean toggles. Values come from BUILDPROBE_* variables, which can be
set on the command line, in the environment, or in a buildprobe.toml
file.
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from buildprobe.core.build_type import BuildType, parse_build_type
from buildprobe.core.errors import ConfigureError

VAR_PREFIX = "BUILDPROBE_"

_TRUE_VALUES = frozenset({"1", "on", "true", "yes"})
_FALSE_VALUES = frozenset({"0", "off", "false", "no", ""})


def get_var(name: str, default: str | None = None) -> str | None:
    """Get a build variable set on the command line or from environment.

    Variables given on the buildprobe command line are passed down as a
    JSON object in BUILDPROBE_VARS.

    Precedence (highest to lowest):
        1. Command line: buildprobe <command> -D VAR=value
        2. Environment variable: VAR=value buildprobe

    Args:
        name: Variable name.
        default: Default value if not set.

    Returns:
        The variable value, or default if not set.
    """
    cli_vars: dict[str, str] = {}
    raw = os.environ.get(VAR_PREFIX + "VARS")
    if raw:
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError:
            loaded = {}
        if isinstance(loaded, dict):
            cli_vars = loaded

    if name in cli_vars:
        return str(cli_vars[name])
    return os.environ.get(name, default)


def parse_bool(value: Any, name: str = "value") -> bool:
    """Interpret an on/off style value.

    Raises:
        ConfigureError: If the value is not a recognized boolean.
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigureError(f"{name}: expected a boolean (ON/OFF), got '{value}'")


def _parse_build_types(value: Any) -> list[BuildType]:
    if isinstance(value, str):
        items = [item for item in value.replace(",", ";").split(";") if item.strip()]
    else:
        items = list(value)
    return [parse_build_type(str(item).strip()) for item in items]


@dataclass
class Settings:
    """Settings of one configuration pass.

    Attributes:
        build_type: Selected build type; None until defaulted by
            setup_build_type(), and unused under a multi-config generator.
        multi_config: The downstream generator builds several
            configurations from one build directory.
        configuration_types: Configurations of a multi-config generator.
        warnings_as_errors: Append -Werror to the common warning flags.
        force_probe_refresh: Ignore cached flag probes once; reset to
            False after the probes ran.
        force_coverage_flags_for_gcov: Use GCOV coverage flags for every
            supported compiler.
        use_cppcheck: Attach cppcheck to registered targets.
        source_dir: Project source directory.
        binary_dir: Build directory.
    """

    build_type: BuildType | None = None
    multi_config: bool = False
    configuration_types: list[BuildType] = field(
        default_factory=lambda: [
            BuildType.DEBUG,
            BuildType.RELEASE,
            BuildType.MIN_SIZE_REL,
            BuildType.REL_WITH_DEB_INFO,
        ]
    )
    warnings_as_errors: bool = False
    force_probe_refresh: bool = False
    force_coverage_flags_for_gcov: bool = False
    use_cppcheck: bool = True
    source_dir: Path = field(default_factory=Path.cwd)
    binary_dir: Path = field(default_factory=lambda: Path("build"))

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> Settings:
        """Build settings from a mapping of lower-case keys.

        Unknown keys are ignored; missing keys keep their defaults.

        Raises:
            ConfigureError: On malformed values (including invalid build
                types).
        """
        settings = cls()
        if values.get("build_type"):
            settings.build_type = parse_build_type(str(values["build_type"]))
        if "configuration_types" in values:
            settings.configuration_types = _parse_build_types(values["configuration_types"])
        for name in (
            "multi_config",
            "warnings_as_errors",
            "force_probe_refresh",
            "force_coverage_flags_for_gcov",
            "use_cppcheck",
        ):
            if name in values and values[name] is not None:
                setattr(settings, name, parse_bool(values[name], name))
        if values.get("source_dir"):
            settings.source_dir = Path(values["source_dir"])
        if values.get("build_dir"):
            settings.binary_dir = Path(values["build_dir"])
        return settings

    @classmethod
    def from_env(cls) -> Settings:
        """Read settings from BUILDPROBE_* variables."""
        values: dict[str, Any] = {}
        for name in (
            "build_type",
            "configuration_types",
            "multi_config",
            "warnings_as_errors",
            "force_probe_refresh",
            "force_coverage_flags_for_gcov",
            "use_cppcheck",
            "source_dir",
            "build_dir",
        ):
            value = get_var(VAR_PREFIX + name.upper())
            if value is not None:
                values[name] = value
        return cls.from_mapping(values)

    @classmethod
    def from_file(cls, path: Path | str) -> Settings:
        """Read settings from a TOML file.

        Keys may live at the top level or in a [buildprobe] table.

        Raises:
            ConfigureError: If the file cannot be parsed.
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigureError(f"Cannot read settings file {path}: {e}") from e
        table = data.get("buildprobe", data)
        return cls.from_mapping(table)

    @property
    def is_coverage_build(self) -> bool:
        if self.multi_config:
            return BuildType.COVERAGE in self.configuration_types
        return self.build_type is BuildType.COVERAGE
