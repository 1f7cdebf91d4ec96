# SPDX-License-Identifier: MIT
"""Tests for buildprobe.targets.git."""

import logging
import subprocess
from unittest.mock import patch

import pytest

from buildprobe.core.errors import ToolInvocationError
from buildprobe.targets.git import update_git_submodule


def checkout(returncode: int = 0, create: bool = True):
    """subprocess.run stand-in for 'git submodule update'."""

    def run(cmd, cwd=None, **kwargs):
        if create and returncode == 0:
            (cwd / cmd[-1] / ".git").mkdir(parents=True)
        return subprocess.CompletedProcess(cmd, returncode, "", "no such remote" if returncode else "")

    return run


@pytest.fixture
def repo(make_context):
    ctx = make_context("git")
    (ctx.source_dir / ".git").mkdir()
    return ctx


class TestUpdateGitSubmodule:
    def test_update(self, repo):
        with patch("buildprobe.targets.git.subprocess.run", side_effect=checkout()) as run:
            assert update_git_submodule(repo, "external/fmt") is True

        assert run.call_args.args[0] == [
            "/usr/bin/git",
            "submodule",
            "update",
            "--init",
            "--recursive",
            "external/fmt",
        ]
        assert run.call_args.kwargs["cwd"] == repo.source_dir

    def test_absolute_path(self, repo):
        target = repo.source_dir / "external" / "fmt"
        with patch("buildprobe.targets.git.subprocess.run", side_effect=checkout()):
            assert update_git_submodule(repo, target) is True

    def test_git_fails(self, repo):
        with patch(
            "buildprobe.targets.git.subprocess.run", side_effect=checkout(returncode=1)
        ):
            with pytest.raises(ToolInvocationError) as exc_info:
                update_git_submodule(repo, "external/fmt")

        assert exc_info.value.returncode == 1
        assert exc_info.value.stderr == "no such remote"
        assert "checkout submodules manually" in str(exc_info.value)

    def test_submodule_missing_after_update(self, repo):
        with patch(
            "buildprobe.targets.git.subprocess.run", side_effect=checkout(create=False)
        ):
            with pytest.raises(ToolInvocationError):
                update_git_submodule(repo, "external/fmt")

    def test_not_a_repository(self, make_context, caplog):
        ctx = make_context("git")
        with patch("buildprobe.targets.git.subprocess.run") as run:
            with caplog.at_level(logging.WARNING):
                assert update_git_submodule(ctx, "external/fmt") is False
        run.assert_not_called()
        assert "is not a Git repository!" in caplog.text

    def test_no_git(self, make_context, caplog):
        ctx = make_context()
        (ctx.source_dir / ".git").mkdir()
        with caplog.at_level(logging.WARNING):
            assert update_git_submodule(ctx, "external/fmt") is False
        assert "git was not found!" in caplog.text
