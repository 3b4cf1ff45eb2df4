"""Tests for sigscan.stores.signature_cache."""

from __future__ import annotations

from sigscan.models import SourceUnit
from sigscan.stores.signature_cache import SignatureCache, content_hash


def test_hits_require_matching_content_hash() -> None:
    cache = SignatureCache()
    unit = SourceUnit(path="src/A.sol")
    fingerprint = content_hash("contract A {}")
    cache.store("/abs/src/A.sol", fingerprint=fingerprint, unit=unit)

    assert cache.get("/abs/src/A.sol", fingerprint=fingerprint) is unit
    assert cache.get("/abs/src/A.sol", fingerprint=content_hash("contract A { }")) is None
    # a stale fingerprint drops the entry
    assert cache.get("/abs/src/A.sol", fingerprint=fingerprint) is None
    assert cache.stats() == {"entries": 0, "max_entries": 1000, "hits": 1, "misses": 2}


def test_least_recently_used_entries_are_evicted() -> None:
    cache = SignatureCache(max_entries=2)
    for name in ("a", "b"):
        cache.store(name, fingerprint=name, unit=SourceUnit(path=name))
    assert cache.get("a", fingerprint="a") is not None
    cache.store("c", fingerprint="c", unit=SourceUnit(path="c"))

    assert cache.get("b", fingerprint="b") is None
    assert cache.get("a", fingerprint="a") is not None
    assert len(cache) == 2


def test_invalidate_and_clear() -> None:
    cache = SignatureCache()
    cache.store("a", fingerprint="1", unit=SourceUnit(path="a"))
    cache.store("b", fingerprint="2", unit=SourceUnit(path="b"))
    cache.invalidate("a")
    assert cache.get("a", fingerprint="1") is None
    cache.clear()
    assert len(cache) == 0
    assert cache.stats()["hits"] == 0
