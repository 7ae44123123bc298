"""Classification of filesystem entries into previewable asset types."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Final

__all__ = [
    "AssetNotFoundError",
    "AssetRecord",
    "AssetType",
    "EXTENSION_TABLE",
    "IMAGE_EXTENSIONS",
    "MODEL_EXTENSIONS",
    "RepresentativeAsset",
    "VECTOR_IMAGE_EXTENSIONS",
    "classify",
    "is_supported",
]


class AssetNotFoundError(RuntimeError):
    """Raised when a requested asset, folder or texture does not exist."""


class AssetType(str, Enum):
    """Semantic kind of a browsable filesystem entry."""

    IMAGE = "image"
    MODEL = "model"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    FONT = "font"
    FOLDER = "folder"
    UNKNOWN = "unknown"


IMAGE_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".bmp", ".gif", ".jpeg", ".jpg", ".png", ".svg", ".tga", ".webp"}
)

VECTOR_IMAGE_EXTENSIONS: Final[frozenset[str]] = frozenset({".svg"})
"""Image formats returned verbatim instead of being rasterized."""

MODEL_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".3ds", ".dae", ".fbx", ".glb", ".gltf", ".obj", ".ply", ".stl"}
)

_TYPE_EXTENSIONS: Final[Mapping[AssetType, frozenset[str]]] = {
    AssetType.IMAGE: IMAGE_EXTENSIONS,
    AssetType.MODEL: MODEL_EXTENSIONS,
    AssetType.AUDIO: frozenset({".aac", ".flac", ".m4a", ".mp3", ".ogg", ".wav"}),
    AssetType.VIDEO: frozenset({".avi", ".mkv", ".mov", ".mp4", ".webm"}),
    AssetType.DOCUMENT: frozenset({".json", ".md", ".txt", ".url", ".xml"}),
    AssetType.FONT: frozenset({".otf", ".ttf", ".woff", ".woff2"}),
}

EXTENSION_TABLE: Final[Mapping[str, AssetType]] = {
    extension: asset_type
    for asset_type, extensions in _TYPE_EXTENSIONS.items()
    for extension in extensions
}
"""Lower-case extension (with leading dot) to :class:`AssetType` lookup."""


def classify(path: str | os.PathLike[str]) -> AssetType:
    """Return the :class:`AssetType` implied by the extension of *path*.

    The lookup is case-insensitive and never touches the filesystem, so
    directories must be recognised by the caller before classification.
    """

    extension = os.path.splitext(os.fspath(path))[1].lower()
    return EXTENSION_TABLE.get(extension, AssetType.UNKNOWN)


def is_supported(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` when *path* maps to a known asset type."""

    return classify(path) is not AssetType.UNKNOWN


@dataclass(frozen=True, slots=True)
class RepresentativeAsset:
    """The asset chosen to stand in for a folder in previews."""

    path: Path
    asset_type: AssetType


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """Snapshot of a directory entry as presented to the browser."""

    path: Path
    is_directory: bool
    asset_type: AssetType
    size: int
    modified_time: datetime
    extension: str | None
    has_assets: bool = False
    first_asset: RepresentativeAsset | None = None

    @property
    def name(self) -> str:
        return self.path.name
