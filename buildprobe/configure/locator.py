# SPDX-License-Identifier: MIT
"""Locating external executables.

ToolLocator resolves a tool from an ordered list of candidate names and
remembers the answer for the lifetime of the locator, so each tool is
searched for once per configuration pass.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from buildprobe.core.errors import ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolHandle:
    """Result of looking up an executable.

    Attributes:
        name: Candidate name that matched, or the first candidate if none
            did.
        path: Resolved path, None if not found.
    """

    name: str
    path: Path | None = None

    @property
    def found(self) -> bool:
        return self.path is not None

    def __str__(self) -> str:
        return str(self.path) if self.path is not None else f"{self.name} (not found)"


class ToolLocator:
    """Memoizing executable lookup.

    Example:
        locator = ToolLocator()
        git = locator.resolve(["git"])
        if not git.found:
            logger.warning("git was not found!")

    Attributes:
        hints: Extra directories searched before PATH.
    """

    def __init__(
        self,
        *,
        hints: Sequence[Path | str] = (),
        search: Callable[[str], str | None] = shutil.which,
    ) -> None:
        """Create a locator.

        Args:
            hints: Directories (or explicit executable paths) searched
                before PATH.
            search: Function used to search PATH (default: shutil.which).
        """
        self.hints = [Path(h) for h in hints]
        self._search = search
        self._handles: dict[tuple[str, ...], ToolHandle] = {}

    def resolve(self, names: Sequence[str] | str, *, required: bool = False) -> ToolHandle:
        """Resolve the first candidate name found on the search path.

        Args:
            names: Candidate names, tried in order. A single string is
                treated as a one-element list.
            required: Raise instead of returning an unfound handle.

        Returns:
            The ToolHandle (memoized per candidate list).

        Raises:
            ValueError: If no candidate names are given.
            ToolNotFoundError: If ``required`` and no candidate is found.
        """
        if isinstance(names, str):
            names = [names]
        key = tuple(names)
        if not key:
            raise ValueError("resolve() needs at least one candidate name")

        handle = self._handles.get(key)
        if handle is None:
            handle = self._lookup(key)
            self._handles[key] = handle
            if handle.found:
                logger.debug("Found %s: %s", handle.name, handle.path)
            else:
                logger.debug("Not found: %s", ", ".join(key))

        if required and not handle.found:
            raise ToolNotFoundError(" or ".join(key))
        return handle

    def require(self, names: Sequence[str] | str) -> Path:
        """Resolve a tool that must exist and return its path.

        Raises:
            ToolNotFoundError: If no candidate is found.
        """
        handle = self.resolve(names)
        if handle.path is None:
            if isinstance(names, str):
                names = [names]
            raise ToolNotFoundError(" or ".join(names))
        return handle.path

    def _lookup(self, names: tuple[str, ...]) -> ToolHandle:
        for name in names:
            path = self._find(name)
            if path is not None:
                return ToolHandle(name=name, path=path)
        return ToolHandle(name=names[0])

    def _find(self, name: str) -> Path | None:
        # Check hints first
        for hint in self.hints:
            if hint.is_file() and hint.name == name and os.access(hint, os.X_OK):
                return hint
            candidate = hint / name
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return candidate

        result = self._search(name)
        if result:
            return Path(result)
        return None

    def reset(self, names: Sequence[str] | str | None = None) -> None:
        """Forget memoized lookups.

        Args:
            names: Candidate list to forget; None forgets everything.
        """
        if names is None:
            self._handles.clear()
            return
        if isinstance(names, str):
            names = [names]
        self._handles.pop(tuple(names), None)

    def __repr__(self) -> str:
        return f"ToolLocator(resolved={len(self._handles)})"
