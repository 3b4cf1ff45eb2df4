"""In-memory cache of extracted source units keyed by path and content hash."""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from typing import Dict, Optional, Tuple

from ..models import SourceUnit

DEFAULT_MAX_ENTRIES = 1000


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class SignatureCache:
    """Stores extracted ``SourceUnit`` objects so unchanged files skip re-parsing.

    Entries are keyed by path; the content hash travels with the entry, so an
    edited file misses and its stale entry is dropped. Least recently used
    entries are evicted once ``max_entries`` is exceeded. Scans share one
    instance across worker threads, hence the lock.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[str, Tuple[str, SourceUnit]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, path: str, *, fingerprint: str) -> Optional[SourceUnit]:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                self._misses += 1
                return None
            if entry[0] != fingerprint:
                del self._entries[path]
                self._misses += 1
                return None
            self._entries.move_to_end(path)
            self._hits += 1
            return entry[1]

    def store(self, path: str, *, fingerprint: str, unit: SourceUnit) -> None:
        with self._lock:
            self._entries[path] = (fingerprint, unit)
            self._entries.move_to_end(path)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, path: str) -> None:
        with self._lock:
            self._entries.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self._max_entries,
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DEFAULT_MAX_ENTRIES", "SignatureCache", "content_hash"]
