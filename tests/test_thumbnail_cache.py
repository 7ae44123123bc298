"""Tests for the bounded thumbnail cache."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from asset_browser.thumbnails import ThumbnailCache, ThumbnailKey


def _key(index: int) -> ThumbnailKey:
    return ThumbnailKey(f"/assets/{index}.png", 200, 1)


def test_insertions_beyond_capacity_evict_oldest_first() -> None:
    cache = ThumbnailCache(capacity=100)

    for index in range(150):
        cache.put(_key(index), f"payload-{index}".encode())

    assert len(cache) == 100
    assert _key(0) not in cache
    assert _key(49) not in cache
    assert _key(50) in cache
    assert cache.keys()[0] == _key(50)
    assert cache.get(_key(149)) == b"payload-149"


def test_reads_do_not_refresh_position() -> None:
    cache = ThumbnailCache(capacity=2)
    cache.put(_key(1), b"one")
    cache.put(_key(2), b"two")

    assert cache.get(_key(1)) == b"one"
    cache.put(_key(3), b"three")

    assert _key(1) not in cache
    assert cache.keys() == [_key(2), _key(3)]


def test_miss_returns_none_and_clear_empties() -> None:
    cache = ThumbnailCache(capacity=4)
    assert cache.get(_key(7)) is None

    cache.put(_key(7), b"seven")
    cache.clear()

    assert len(cache) == 0


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ThumbnailCache(capacity=0)


def test_key_tracks_modification_time(tmp_path: Path) -> None:
    source = tmp_path / "hero.png"
    source.write_bytes(b"x")
    os.utime(source, ns=(1_000_000_000, 1_000_000_000))
    first = ThumbnailKey.for_path(source, 128)

    os.utime(source, ns=(2_000_000_000, 2_000_000_000))
    second = ThumbnailKey.for_path(source, 128)

    assert first.path == second.path == str(source)
    assert first.modified_ns == 1_000_000_000
    assert first != second


def test_key_for_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        ThumbnailKey.for_path(tmp_path / "missing.png", 64)
