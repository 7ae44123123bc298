"""Produce cached thumbnails for files, models and folders."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..assets import (
    VECTOR_IMAGE_EXTENSIONS,
    AssetNotFoundError,
    AssetType,
    RepresentativeAsset,
    classify,
)
from ..discovery import find_representative_asset
from ..textures import resolve_texture
from .cache import DEFAULT_CACHE_CAPACITY, ThumbnailCache, ThumbnailKey
from .render import (
    compose_model_thumbnail,
    draw_model_icon,
    draw_type_panel,
    encode_png,
    letterbox,
    panel_color_for,
)

__all__ = [
    "DEFAULT_THUMBNAIL_SIZE",
    "ThumbnailGenerationError",
    "ThumbnailGenerator",
    "ThumbnailResult",
]

logger = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_SIZE = 200
"""Default edge length, in pixels, of generated thumbnails."""

PNG_MEDIA_TYPE = "image/png"
SVG_MEDIA_TYPE = "image/svg+xml"

TextureResolver = Callable[[Path], Path | None]


class ThumbnailGenerationError(RuntimeError):
    """Raised when a thumbnail cannot be rendered from its source."""


@dataclass(slots=True)
class ThumbnailResult:
    """Encoded thumbnail returned to callers."""

    path: Path
    image_bytes: bytes
    media_type: str
    cached: bool


class ThumbnailGenerator:
    """Render thumbnails for any classified asset and memoize the output.

    Failures to decode a source never propagate: the generator falls back to
    a synthetic icon so one broken file cannot break a directory listing.
    Only a missing source raises :class:`~asset_browser.assets.AssetNotFoundError`.
    """

    def __init__(
        self,
        cache: ThumbnailCache | None = None,
        *,
        texture_resolver: TextureResolver = resolve_texture,
    ) -> None:
        self._cache = cache if cache is not None else ThumbnailCache(DEFAULT_CACHE_CAPACITY)
        self._resolve_texture = texture_resolver

    @property
    def cache(self) -> ThumbnailCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def thumbnail(self, path: str | os.PathLike[str], size: int = DEFAULT_THUMBNAIL_SIZE) -> ThumbnailResult:
        """Return the thumbnail of the file at *path* rendered at *size* pixels."""

        source = _existing_file(path)
        size = _validate_size(size)
        asset_type = classify(source)

        if asset_type is AssetType.IMAGE and source.suffix.lower() in VECTOR_IMAGE_EXTENSIONS:
            return self._vector_passthrough(source, size)

        key = _key_for(source, size)
        payload = self._cache.get(key)
        if payload is not None:
            return ThumbnailResult(source, payload, PNG_MEDIA_TYPE, cached=True)

        payload = self.render(source, asset_type, size)
        self._cache.put(key, payload)
        return ThumbnailResult(source, payload, PNG_MEDIA_TYPE, cached=False)

    def folder_preview(
        self,
        folder: str | os.PathLike[str],
        size: int = DEFAULT_THUMBNAIL_SIZE,
    ) -> ThumbnailResult:
        """Return a preview for *folder* built from its representative asset."""

        directory = Path(folder)
        if not directory.is_dir():
            raise AssetNotFoundError(f"Folder {directory!s} does not exist")
        size = _validate_size(size)

        asset = find_representative_asset(directory)
        if asset is None:
            raise AssetNotFoundError(f"No assets found in {directory!s}")

        if asset.asset_type is AssetType.IMAGE and asset.path.suffix.lower() in VECTOR_IMAGE_EXTENSIONS:
            return self._vector_passthrough(asset.path, size)

        key = _key_for(asset.path, size, kind=f"folder:{os.path.abspath(directory)}")
        payload = self._cache.get(key)
        if payload is not None:
            return ThumbnailResult(asset.path, payload, PNG_MEDIA_TYPE, cached=True)

        payload = self._render_folder_asset(asset, size)
        self._cache.put(key, payload)
        return ThumbnailResult(asset.path, payload, PNG_MEDIA_TYPE, cached=False)

    def model_texture(self, model_path: str | os.PathLike[str]) -> Path:
        """Return the colour texture resolved for *model_path*.

        Raises
        ------
        AssetNotFoundError
            If the model does not exist or no texture can be found for it.
        """

        model = _existing_file(model_path)
        texture = self._resolve_texture(model)
        if texture is None:
            raise AssetNotFoundError(f"No colormap texture found for {model!s}")
        return texture

    def render(self, path: Path, asset_type: AssetType, size: int) -> bytes:
        """Render *path* without consulting the cache and return PNG bytes."""

        if asset_type is AssetType.IMAGE:
            try:
                return encode_png(self._render_image(path, size))
            except ThumbnailGenerationError:
                logger.exception("Falling back to icon for unreadable image %s", path)
                return encode_png(draw_type_panel(asset_type.value, size))

        if asset_type is AssetType.MODEL:
            return encode_png(self._render_model(path, size))

        return encode_png(draw_type_panel(asset_type.value, size))

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _render_image(self, path: Path, size: int) -> Image.Image:
        try:
            with Image.open(path) as source:
                source.load()
                return letterbox(source, size)
        except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as exc:
            raise ThumbnailGenerationError(f"Unable to decode image {path!s}: {exc}") from exc

    def _vector_passthrough(self, path: Path, size: int) -> ThumbnailResult:
        try:
            markup = path.read_bytes()
        except OSError:
            logger.exception("Falling back to icon for unreadable vector image %s", path)
            panel = draw_type_panel(AssetType.IMAGE.value, size)
            return ThumbnailResult(path, encode_png(panel), PNG_MEDIA_TYPE, cached=False)
        return ThumbnailResult(path, markup, SVG_MEDIA_TYPE, cached=False)

    def _render_model(self, path: Path, size: int) -> Image.Image:
        try:
            texture = self._resolve_texture(path)
        except OSError:
            logger.exception("Texture lookup failed for %s", path)
            texture = None

        if texture is not None:
            try:
                return compose_model_thumbnail(texture, size)
            except Exception:  # noqa: BLE001
                logger.warning("Texture %s for %s could not be composited; drawing icon", texture, path)

        return draw_model_icon(path.suffix, size)

    def _render_folder_asset(self, asset: RepresentativeAsset, size: int) -> bytes:
        if asset.asset_type in (AssetType.IMAGE, AssetType.MODEL):
            return self.render(asset.path, asset.asset_type, size)

        type_name = asset.asset_type.value
        panel = draw_type_panel(type_name, size, subtitle="ASSET", color=panel_color_for(type_name))
        return encode_png(panel)


def _existing_file(path: str | os.PathLike[str]) -> Path:
    source = Path(os.path.abspath(os.fspath(path)))
    if not source.is_file():
        raise AssetNotFoundError(f"File {source!s} does not exist")
    return source


def _key_for(path: Path, size: int, *, kind: str = "file") -> ThumbnailKey:
    try:
        return ThumbnailKey.for_path(path, size, kind=kind)
    except OSError as exc:
        raise AssetNotFoundError(f"File {path!s} disappeared while rendering") from exc


def _validate_size(size: int) -> int:
    value = int(size)
    if value < 1:
        raise ValueError("Thumbnail size must be a positive number of pixels")
    return value
