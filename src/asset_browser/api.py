"""HTTP endpoints serving thumbnails, folder previews and model files."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import FileResponse, Response

from .assets import AssetNotFoundError
from .config import get_config
from .thumbnails import ThumbnailCache, ThumbnailGenerator, ThumbnailResult
from .utils.paths import coerce_path

__all__ = ["create_app"]

logger = logging.getLogger(__name__)


def create_app(generator: ThumbnailGenerator | None = None) -> FastAPI:
    """Return the FastAPI application backed by *generator*."""

    config = get_config()
    if generator is None:
        generator = ThumbnailGenerator(ThumbnailCache(config.thumbnail_cache_capacity))
    default_size = config.thumbnail_size

    app = FastAPI(title="Asset Browser")
    app.state.generator = generator

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/thumbnail")
    async def thumbnail(path: str = Query(...), size: int = Query(default_size, ge=1, le=2048)) -> Response:
        source = _request_path(path)
        try:
            result = await asyncio.to_thread(generator.thumbnail, source, size)
        except AssetNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _image_response(result)

    @app.get("/api/folder-preview")
    async def folder_preview(path: str = Query(...), size: int = Query(default_size, ge=1, le=2048)) -> Response:
        folder = _request_path(path)
        try:
            result = await asyncio.to_thread(generator.folder_preview, folder, size)
        except AssetNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _image_response(result)

    @app.get("/api/model-texture")
    async def model_texture(path: str = Query(...)) -> FileResponse:
        model = _request_path(path)
        try:
            texture = await asyncio.to_thread(generator.model_texture, model)
        except AssetNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return FileResponse(texture, media_type=_guess_media_type(texture))

    @app.get("/api/file")
    async def raw_file(path: str = Query(...)) -> FileResponse:
        source = _request_path(path)
        if not source.is_file():
            raise HTTPException(status_code=404, detail=f"File {source!s} does not exist")
        return FileResponse(source, media_type=_guess_media_type(source))

    return app


def _request_path(value: str) -> Path:
    try:
        return coerce_path(value, empty_error="A path query parameter is required")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _image_response(result: ThumbnailResult) -> Response:
    headers = {"X-Thumbnail-Cache": "hit" if result.cached else "miss"}
    return Response(content=result.image_bytes, media_type=result.media_type, headers=headers)


def _guess_media_type(path: Path) -> str:
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type or "application/octet-stream"
