# SPDX-License-Identifier: MIT
"""Probe result cache.

Probing a compiler is slow, so the outcome of each probe is kept in a
ProbeCache, partitioned by toolchain identity. The cache lives for one
configuration pass and can be persisted to a JSON file in the build
directory so later passes skip the probes until explicitly invalidated.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class ProbeKey:
    """Identity of one probe.

    Attributes:
        toolchain: Toolchain identity string (see Toolchain.identity).
        candidate: Normalized description of what was probed.
    """

    toolchain: str
    candidate: str


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe.

    Attributes:
        key: The probe this result belongs to.
        supported: Whether the probe succeeded.
        generation: Cache generation at which the result was stored.
        values: Payload of list-valued probes (e.g. the supported subset
            of a flag list).
    """

    key: ProbeKey
    supported: bool
    generation: int = 0
    values: tuple[str, ...] = ()


class ProbeCache:
    """Store of probe results for one configuration pass.

    The cache is an ordinary object: whoever runs the configuration pass
    creates it and passes it to the components that probe, so tests can
    hand in a fresh or pre-seeded instance.

    Example:
        cache = ProbeCache.load(Path("build/buildprobe_cache.json"))
        key = ProbeKey("cxx:GNU:13.2.0", "flags:-Wall")
        if cache.get(key) is None:
            cache.put(key, ProbeResult(key, supported=True))
        cache.save()
    """

    def __init__(self, path: Path | str | None = None) -> None:
        """Create an empty cache.

        Args:
            path: Default file used by save(); None keeps it in memory.
        """
        self.path = Path(path) if path is not None else None
        self._entries: dict[str, dict[str, ProbeResult]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, key: ProbeKey) -> ProbeResult | None:
        """Return the cached result for ``key``, or None on a miss."""
        with self._lock:
            return self._entries.get(key.toolchain, {}).get(key.candidate)

    def put(self, key: ProbeKey, result: ProbeResult) -> ProbeResult:
        """Store a result, replacing any previous result for the key.

        The stored result is stamped with a new generation number.

        Returns:
            The result as stored.
        """
        with self._lock:
            self._generation += 1
            stored = ProbeResult(
                key=key,
                supported=result.supported,
                generation=self._generation,
                values=tuple(result.values),
            )
            self._entries.setdefault(key.toolchain, {})[key.candidate] = stored
            return stored

    def invalidate(self, key: ProbeKey) -> bool:
        """Drop the result for one key.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            entries = self._entries.get(key.toolchain)
            if entries is None or key.candidate not in entries:
                return False
            del entries[key.candidate]
            if not entries:
                del self._entries[key.toolchain]
            return True

    def invalidate_all(self, toolchain: str) -> int:
        """Drop every result recorded for one toolchain identity.

        Results for other toolchains are left alone.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            entries = self._entries.pop(toolchain, {})
            return len(entries)

    def toolchains(self) -> list[str]:
        """Toolchain identities that have cached results."""
        with self._lock:
            return sorted(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._entries.values())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, ProbeKey) and self.get(key) is not None

    # Persistence

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "version": CACHE_FORMAT_VERSION,
                "generation": self._generation,
                "entries": {
                    toolchain: {
                        candidate: {
                            "supported": result.supported,
                            "generation": result.generation,
                            "values": list(result.values),
                        }
                        for candidate, result in entries.items()
                    }
                    for toolchain, entries in self._entries.items()
                },
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path | str | None = None) -> ProbeCache:
        """Rebuild a cache from to_dict() output.

        Data written by an incompatible format version is discarded.
        """
        cache = cls(path)
        if data.get("version") != CACHE_FORMAT_VERSION:
            logger.debug("Discarding probe cache with format %r", data.get("version"))
            return cache

        for toolchain, entries in data.get("entries", {}).items():
            for candidate, raw in entries.items():
                key = ProbeKey(toolchain, candidate)
                cache._entries.setdefault(toolchain, {})[candidate] = ProbeResult(
                    key=key,
                    supported=bool(raw.get("supported", False)),
                    generation=int(raw.get("generation", 0)),
                    values=tuple(raw.get("values", ())),
                )
        cache._generation = int(data.get("generation", 0))
        return cache

    @classmethod
    def load(cls, path: Path | str) -> ProbeCache:
        """Load a cache file, starting empty if it is missing, unreadable or malformed."""
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable probe cache %s: %s", path, e)
            return cls(path)
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed probe cache %s", path)
            return cls(path)
        try:
            return cls.from_dict(data, path)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed probe cache %s: %s", path, e)
            return cls(path)

    def save(self, path: Path | str | None = None) -> Path:
        """Write the cache to disk.

        The file is replaced atomically so a concurrent reader sees
        either the old or the new content.

        Args:
            path: Optional path override.

        Returns:
            The path written.

        Raises:
            ValueError: If neither ``path`` nor a default path is set.
        """
        cache_path = Path(path) if path is not None else self.path
        if cache_path is None:
            raise ValueError("ProbeCache has no path to save to")
        cache_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.to_dict()
        fd, tmp_name = tempfile.mkstemp(
            dir=cache_path.parent, prefix=cache_path.name, suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, cache_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return cache_path

    def __repr__(self) -> str:
        return f"ProbeCache(entries={len(self)}, generation={self._generation})"
