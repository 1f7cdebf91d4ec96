# SPDX-License-Identifier: MIT
"""Shared fixtures for buildprobe tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from buildprobe.configure.cache import ProbeCache
from buildprobe.configure.context import ConfigureContext
from buildprobe.configure.locator import ToolLocator
from buildprobe.configure.settings import Settings
from buildprobe.core.toolchain import Toolchain, ToolchainFamily


def fake_search(*available: str) -> Callable[[str], str | None]:
    """PATH search that only knows the given tool names (in /usr/bin)."""
    tools = {name: f"/usr/bin/{name}" for name in available}
    return tools.get


@pytest.fixture
def clang_cxx() -> Toolchain:
    return Toolchain(ToolchainFamily.CLANG, "17.0.6", "cxx")


@pytest.fixture
def gnu_cxx() -> Toolchain:
    return Toolchain(ToolchainFamily.GNU, "13.2.0", "cxx")


@pytest.fixture
def unsupported_cxx() -> Toolchain:
    return Toolchain(ToolchainFamily.UNSUPPORTED, "", "cxx")


@pytest.fixture
def make_context(tmp_path):
    """Factory for contexts with a fake PATH and registered toolchains."""

    def factory(
        *tools: str,
        toolchains: tuple[Toolchain, ...] = (),
        **settings_kwargs,
    ) -> ConfigureContext:
        settings_kwargs.setdefault("source_dir", tmp_path / "src")
        settings_kwargs.setdefault("binary_dir", tmp_path / "build")
        settings = Settings(**settings_kwargs)
        settings.source_dir.mkdir(parents=True, exist_ok=True)
        ctx = ConfigureContext(
            settings,
            cache=ProbeCache(),
            locator=ToolLocator(search=fake_search(*tools)),
        )
        for toolchain in toolchains:
            ctx.register_toolchain(toolchain)
        return ctx

    return factory
