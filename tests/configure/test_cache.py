# SPDX-License-Identifier: MIT
"""Tests for buildprobe.configure.cache."""

import json
import logging
import threading

import pytest

from buildprobe.configure.cache import ProbeCache, ProbeKey, ProbeResult

GCC = "cxx:GNU:13.2.0"
CLANG = "cxx:Clang:17.0.6"


def result(key: ProbeKey, *values: str) -> ProbeResult:
    return ProbeResult(key, supported=True, values=values)


class TestProbeCacheBasics:
    def test_miss_returns_none(self):
        cache = ProbeCache()
        assert cache.get(ProbeKey(GCC, "flags:-Wall")) is None

    def test_put_then_get(self):
        cache = ProbeCache()
        key = ProbeKey(GCC, "flags:-Wall")
        cache.put(key, result(key, "-Wall"))

        stored = cache.get(key)
        assert stored is not None
        assert stored.supported is True
        assert stored.values == ("-Wall",)
        assert key in cache

    def test_keys_are_exact_match(self):
        cache = ProbeCache()
        key = ProbeKey(GCC, "flags:-Wall")
        cache.put(key, result(key, "-Wall"))
        assert cache.get(ProbeKey(GCC, "flags:-Wall;-Wextra")) is None
        assert cache.get(ProbeKey(CLANG, "flags:-Wall")) is None

    def test_put_replaces_and_bumps_generation(self):
        cache = ProbeCache()
        key = ProbeKey(GCC, "linker")
        first = cache.put(key, result(key, "GNU gold"))
        second = cache.put(key, result(key, "LLD"))

        assert second.generation > first.generation
        assert cache.get(key) == second
        assert len(cache) == 1


class TestProbeCacheInvalidation:
    def test_invalidate_one_key(self):
        cache = ProbeCache()
        a = ProbeKey(GCC, "a")
        b = ProbeKey(GCC, "b")
        cache.put(a, result(a))
        cache.put(b, result(b))

        assert cache.invalidate(a) is True
        assert cache.get(a) is None
        assert cache.get(b) is not None

    def test_invalidate_missing_key(self):
        assert ProbeCache().invalidate(ProbeKey(GCC, "a")) is False

    def test_invalidate_all_only_touches_one_toolchain(self):
        cache = ProbeCache()
        for toolchain in (GCC, CLANG):
            for candidate in ("a", "b"):
                key = ProbeKey(toolchain, candidate)
                cache.put(key, result(key))

        assert cache.invalidate_all(GCC) == 2
        assert cache.toolchains() == [CLANG]
        assert cache.get(ProbeKey(CLANG, "a")) is not None
        assert len(cache) == 2

    def test_invalidate_all_unknown_toolchain(self):
        assert ProbeCache().invalidate_all("c:GNU:1.0") == 0


class TestProbeCachePersistence:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "cache.json"
        cache = ProbeCache(path)
        key = ProbeKey(CLANG, "flags:-Wall;-Wfoo")
        cache.put(key, result(key, "-Wall"))
        cache.save()

        loaded = ProbeCache.load(path)
        stored = loaded.get(key)
        assert stored is not None
        assert stored.values == ("-Wall",)
        assert loaded.generation == cache.generation

    def test_save_leaves_no_temp_files(self, tmp_path):
        cache = ProbeCache(tmp_path / "cache.json")
        cache.save()
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    def test_save_without_path(self):
        with pytest.raises(ValueError):
            ProbeCache().save()

    def test_load_missing_file(self, tmp_path):
        cache = ProbeCache.load(tmp_path / "missing.json")
        assert len(cache) == 0
        assert cache.path == tmp_path / "missing.json"

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        assert len(ProbeCache.load(path)) == 0

    def test_load_other_format_version(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"version": 99, "entries": {GCC: {"a": {}}}}))
        assert len(ProbeCache.load(path)) == 0

    @pytest.mark.parametrize(
        "entries",
        [
            [],
            {GCC: ["-Wall"]},
            {GCC: {"flags": "-Wall"}},
            {GCC: {"flags": {"generation": "latest"}}},
        ],
    )
    def test_load_malformed_entries(self, tmp_path, caplog, entries):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"version": 1, "entries": entries}))
        with caplog.at_level(logging.WARNING):
            cache = ProbeCache.load(path)
        assert len(cache) == 0
        assert cache.path == path
        assert "Ignoring malformed probe cache" in caplog.text


class TestProbeCacheThreads:
    def test_concurrent_puts(self):
        cache = ProbeCache()

        def worker(n: int) -> None:
            for i in range(50):
                key = ProbeKey(GCC, f"{n}-{i}")
                cache.put(key, result(key))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 200
        assert cache.generation == 200
