"""Directory scanning helpers used to describe folders and pick preview assets."""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from .assets import (
    AssetNotFoundError,
    AssetRecord,
    AssetType,
    RepresentativeAsset,
    classify,
    is_supported,
)

__all__ = [
    "describe_path",
    "find_representative_asset",
    "folder_has_assets",
    "list_directory",
]

logger = logging.getLogger(__name__)

_FILE_PRIORITY: tuple[AssetType | None, ...] = (AssetType.MODEL, AssetType.IMAGE, None)
"""Search passes over a folder; ``None`` accepts any supported type."""


def find_representative_asset(
    folder: str | os.PathLike[str],
    *,
    max_depth: int = 1,
) -> RepresentativeAsset | None:
    """Return the asset that best represents *folder* in a preview.

    Files directly inside the folder are considered first: a 3D model wins
    over an image, which wins over any other supported file. When the folder
    holds no usable file, subdirectories are searched (up to *max_depth*
    levels) using the same order and the first hit is returned.
    """

    root = Path(folder)
    try:
        entries = _scan_entries(root)
    except OSError as exc:
        logger.debug("Unable to read folder %s: %s", root, exc)
        return None

    files = [path for path, is_dir in entries if not is_dir]
    for wanted in _FILE_PRIORITY:
        for path in files:
            asset_type = classify(path)
            if asset_type is AssetType.UNKNOWN:
                continue
            if wanted is None or asset_type is wanted:
                return RepresentativeAsset(path=path, asset_type=asset_type)

    if max_depth <= 0:
        return None

    for path, is_dir in entries:
        if not is_dir:
            continue
        found = find_representative_asset(path, max_depth=max_depth - 1)
        if found is not None:
            return found
    return None


def folder_has_assets(folder: str | os.PathLike[str]) -> bool:
    """Return ``True`` when *folder* directly contains a supported entry."""

    try:
        with os.scandir(folder) as iterator:
            return any(is_supported(entry.name) for entry in iterator)
    except OSError as exc:
        logger.debug("Unable to inspect folder %s: %s", folder, exc)
        return False


def describe_path(path: str | os.PathLike[str]) -> AssetRecord:
    """Build a fresh :class:`AssetRecord` for *path*.

    Raises
    ------
    AssetNotFoundError
        If *path* does not exist or cannot be stat-ed.
    """

    target = Path(path)
    try:
        stats = target.stat()
    except OSError as exc:
        raise AssetNotFoundError(f"{target!s} does not exist") from exc

    modified = datetime.fromtimestamp(stats.st_mtime, tz=UTC)
    if target.is_dir():
        has_assets = folder_has_assets(target)
        first_asset = find_representative_asset(target) if has_assets else None
        return AssetRecord(
            path=target,
            is_directory=True,
            asset_type=AssetType.FOLDER,
            size=stats.st_size,
            modified_time=modified,
            extension=None,
            has_assets=has_assets,
            first_asset=first_asset,
        )

    return AssetRecord(
        path=target,
        is_directory=False,
        asset_type=classify(target),
        size=stats.st_size,
        modified_time=modified,
        extension=target.suffix.lower(),
    )


def list_directory(path: str | os.PathLike[str]) -> list[AssetRecord]:
    """Return records for every readable entry in the directory *path*.

    Directories are listed before files, each group ordered by name.
    Entries that vanish or cannot be stat-ed while listing are skipped.
    """

    directory = Path(path)
    if not directory.exists():
        raise AssetNotFoundError(f"Directory {directory!s} does not exist")
    if not directory.is_dir():
        raise NotADirectoryError(f"{directory!s} is not a directory")

    records: list[AssetRecord] = []
    for entry, _ in _scan_entries(directory):
        try:
            records.append(describe_path(entry))
        except AssetNotFoundError:
            logger.debug("Skipping unreadable entry %s", entry)
    records.sort(key=lambda record: (not record.is_directory, record.name.casefold()))
    return records


def _scan_entries(folder: Path) -> list[tuple[Path, bool]]:
    entries: list[tuple[Path, bool]] = []
    with os.scandir(folder) as iterator:
        for entry in iterator:
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue
            entries.append((Path(entry.path), is_dir))
    entries.sort(key=lambda item: item[0].name)
    return entries
