"""Thumbnail rendering and caching for browsable assets."""

from .cache import DEFAULT_CACHE_CAPACITY, ThumbnailCache, ThumbnailKey
from .generator import (
    DEFAULT_THUMBNAIL_SIZE,
    ThumbnailGenerationError,
    ThumbnailGenerator,
    ThumbnailResult,
)

__all__ = [
    "DEFAULT_CACHE_CAPACITY",
    "DEFAULT_THUMBNAIL_SIZE",
    "ThumbnailCache",
    "ThumbnailGenerationError",
    "ThumbnailGenerator",
    "ThumbnailKey",
    "ThumbnailResult",
]
