# SPDX-License-Identifier: MIT
"""Tests for buildprobe.util.commands."""

from buildprobe.util.commands import main, mkdir, remove


class TestMkdir:
    def test_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b"
        mkdir(str(target))
        assert target.is_dir()

    def test_existing_directory(self, tmp_path):
        mkdir(str(tmp_path))
        assert tmp_path.is_dir()


class TestRemove:
    def test_directory_tree(self, tmp_path):
        tree = tmp_path / "work"
        (tree / "sub").mkdir(parents=True)
        (tree / "sub" / "data.profraw").write_text("x")
        remove(str(tree))
        assert not tree.exists()

    def test_file(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        remove(str(f))
        assert not f.exists()

    def test_symlink_keeps_target(self, tmp_path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real)
        remove(str(link))
        assert not link.exists()
        assert real.is_dir()

    def test_missing_path(self, tmp_path):
        remove(str(tmp_path / "missing"))


class TestMain:
    def test_no_arguments(self, capsys):
        assert main([]) == 1
        assert "Usage" in capsys.readouterr().err

    def test_mkdir_and_remove(self, tmp_path):
        a, b = tmp_path / "a", tmp_path / "b"
        assert main(["mkdir", str(a), str(b)]) == 0
        assert a.is_dir() and b.is_dir()
        assert main(["remove", str(a), str(b)]) == 0
        assert not a.exists() and not b.exists()

    def test_missing_path_argument(self, capsys):
        assert main(["mkdir"]) == 1
        assert "mkdir <path>" in capsys.readouterr().err

    def test_unknown_command(self, capsys):
        assert main(["copy", "a", "b"]) == 1
        assert "Unknown command: copy" in capsys.readouterr().err
