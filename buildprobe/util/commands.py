# SPDX-License-Identifier: MIT
"""Cross-platform command helpers for buildprobe pipeline steps.

These helpers are invoked from pipeline steps (and the generated ninja
edges) using Python, so steps do not depend on a POSIX shell.

Usage in pipeline steps:
    python -m buildprobe.util.commands mkdir <dir>
    python -m buildprobe.util.commands remove <path>
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path


def mkdir(path: str) -> None:
    """Create a directory and its parents; an existing one is fine."""
    Path(path).mkdir(parents=True, exist_ok=True)


def remove(path: str) -> None:
    """Remove a file or directory tree; a missing path is fine."""
    target = Path(path)
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(
            "Usage: python -m buildprobe.util.commands <command> [args...]",
            file=sys.stderr,
        )
        print("Commands: mkdir, remove", file=sys.stderr)
        return 1

    cmd = args[0]

    if cmd in ("mkdir", "remove"):
        if len(args) < 2:
            print(
                f"Usage: python -m buildprobe.util.commands {cmd} <path> [path...]",
                file=sys.stderr,
            )
            return 1
        func = mkdir if cmd == "mkdir" else remove
        for path in args[1:]:
            func(path)
        return 0

    else:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
