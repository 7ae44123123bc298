"""Bounded in-memory cache for encoded thumbnails."""

from __future__ import annotations

import logging
import os
import threading
from collections import OrderedDict
from typing import NamedTuple

__all__ = ["DEFAULT_CACHE_CAPACITY", "ThumbnailCache", "ThumbnailKey"]

logger = logging.getLogger(__name__)

DEFAULT_CACHE_CAPACITY = 100


class ThumbnailKey(NamedTuple):
    """Identify a rendered thumbnail.

    ``modified_ns`` ties an entry to one revision of the source file: once the
    file changes, lookups build a different key and miss.
    """

    path: str
    size: int
    modified_ns: int
    kind: str = "file"

    @classmethod
    def for_path(cls, path: str | os.PathLike[str], size: int, *, kind: str = "file") -> ThumbnailKey:
        """Build a key from the current modification time of *path*.

        Raises :class:`OSError` when *path* cannot be stat-ed.
        """

        absolute = os.path.abspath(os.fspath(path))
        return cls(absolute, int(size), os.stat(absolute).st_mtime_ns, kind)


class ThumbnailCache:
    """Keep at most *capacity* thumbnails, dropping the oldest insertions first.

    Reads do not refresh an entry's position. Entries for outdated file
    revisions are never looked up again and simply age out.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        self._capacity = int(capacity)
        self._entries: OrderedDict[ThumbnailKey, bytes] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: ThumbnailKey) -> bytes | None:
        """Return the cached payload for *key* or ``None`` on a miss."""

        with self._lock:
            return self._entries.get(key)

    def put(self, key: ThumbnailKey, payload: bytes) -> None:
        """Store *payload* under *key* and enforce the capacity bound."""

        with self._lock:
            self._entries[key] = bytes(payload)
            self._evict_if_over_capacity()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[ThumbnailKey]:
        """Return resident keys, oldest insertion first."""

        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _evict_if_over_capacity(self) -> None:
        evicted = 0
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=False)
            evicted += 1
        if evicted:
            logger.debug("Evicted %d thumbnail(s); %d resident", evicted, len(self._entries))

