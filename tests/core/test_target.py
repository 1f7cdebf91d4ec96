# SPDX-License-Identifier: MIT
"""Tests for buildprobe.core.target."""

from pathlib import Path

from buildprobe.core.build_type import SANITIZERS_ACTIVE, BuildType
from buildprobe.core.target import Scope, ScopedAttributes, TargetKind, TargetSpec


class TestScopedAttributes:
    def test_empty(self):
        assert ScopedAttributes().is_empty()

    def test_merge_deduplicates(self):
        a = ScopedAttributes(compile_flags=["-Wall"], include_dirs=[Path("inc")])
        b = ScopedAttributes(compile_flags=["-Wall", "-g"], include_dirs=[Path("inc")])
        a.merge(b)
        assert a.compile_flags == ["-Wall", "-g"]
        assert a.include_dirs == [Path("inc")]

    def test_clone_is_independent(self):
        a = ScopedAttributes(definitions=["FOO"])
        b = a.clone()
        b.definitions.append("BAR")
        assert a.definitions == ["FOO"]


class TestTargetSpecScopes:
    def test_add_private_flags(self):
        app = TargetSpec("app")
        assert app.add(Scope.PRIVATE, "compile_flags", ["-Wall", "-Wall"])
        assert app.private.compile_flags == ["-Wall"]
        assert app.public.is_empty()

    def test_include_dirs_become_paths(self):
        lib = TargetSpec("lib", TargetKind.LIBRARY)
        lib.add(Scope.PUBLIC, "include_dirs", ["include", Path("include")])
        assert lib.public.include_dirs == [Path("include")]

    def test_interface_target_ignores_public_and_private(self):
        hdr = TargetSpec("hdr", TargetKind.INTERFACE_LIBRARY)
        assert not hdr.add(Scope.PUBLIC, "definitions", ["FOO"])
        assert not hdr.add(Scope.PRIVATE, "compile_flags", ["-Wall"])
        assert hdr.add(Scope.INTERFACE, "definitions", ["FOO"])
        assert hdr.public.is_empty()
        assert hdr.private.is_empty()
        assert hdr.interface.definitions == ["FOO"]

    def test_usage_requirements(self):
        lib = TargetSpec("lib", TargetKind.LIBRARY)
        lib.add(Scope.PUBLIC, "definitions", ["PUB"])
        lib.add(Scope.PRIVATE, "definitions", ["PRIV"])
        lib.add(Scope.INTERFACE, "definitions", ["IFACE"])
        assert lib.usage_requirements().definitions == ["PUB", "IFACE"]


class TestBuildTypeFlags:
    def test_flags_only_active_in_listed_build_types(self):
        app = TargetSpec("app")
        app.add(Scope.PRIVATE, "compile_flags", ["-Wall"])
        app.add_for_build_types(
            SANITIZERS_ACTIVE,
            compile_flags=["-fsanitize=address"],
            link_flags=["-fsanitize=address"],
        )

        assert app.active_compile_flags(BuildType.DEBUG) == ["-Wall", "-fsanitize=address"]
        assert app.active_compile_flags(BuildType.RELEASE) == ["-Wall"]
        assert app.active_link_flags(BuildType.COVERAGE) == ["-fsanitize=address"]
        assert app.active_link_flags(BuildType.MIN_SIZE_REL) == []

    def test_interface_target_rejects_build_type_flags(self):
        hdr = TargetSpec("hdr", TargetKind.INTERFACE_LIBRARY)
        assert not hdr.add_for_build_types(SANITIZERS_ACTIVE, compile_flags=["-g"])
        assert hdr.config_compile_flags == {}

    def test_no_build_type(self):
        app = TargetSpec("app")
        app.add_for_build_types(SANITIZERS_ACTIVE, compile_flags=["-g"])
        assert app.active_compile_flags(None) == []


class TestOutputFile:
    def test_default(self, tmp_path):
        assert TargetSpec("app").output_file(tmp_path) == tmp_path / "app"

    def test_output_name_and_directory(self, tmp_path):
        app = TargetSpec("app", output_name="app.bin")
        app.properties["RUNTIME_OUTPUT_DIRECTORY"] = "debug/"
        assert app.output_file(tmp_path) == tmp_path / "debug" / "app.bin"

    def test_library_uses_library_directory(self, tmp_path):
        lib = TargetSpec("libfoo.so", TargetKind.LIBRARY)
        lib.properties["RUNTIME_OUTPUT_DIRECTORY"] = "bin/"
        lib.properties["LIBRARY_OUTPUT_DIRECTORY"] = "lib/"
        assert lib.output_file(tmp_path) == tmp_path / "lib" / "libfoo.so"


class TestTargetSpecIdentity:
    def test_equality_by_name(self):
        assert TargetSpec("app") == TargetSpec("app", TargetKind.LIBRARY)
        assert len({TargetSpec("a"), TargetSpec("a"), TargetSpec("b")}) == 2

    def test_repr(self):
        assert repr(TargetSpec("app")) == "TargetSpec('app', Executable)"
