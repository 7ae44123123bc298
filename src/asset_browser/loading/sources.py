"""Where interactive previews fetch model bytes and textures from."""

from __future__ import annotations

import asyncio
import io
import logging
import urllib.parse
from pathlib import Path
from typing import Protocol, runtime_checkable

import requests
from PIL import Image, UnidentifiedImageError

from ..textures import resolve_texture
from .scene import ModelLoadError

__all__ = ["HttpModelSource", "LocalModelSource", "ModelSource"]

logger = logging.getLogger(__name__)


@runtime_checkable
class ModelSource(Protocol):
    """Asynchronous provider of model data and its optional colour texture."""

    async def fetch_model(self, path: Path) -> bytes: ...

    async def fetch_texture(self, path: Path) -> Image.Image | None: ...


class LocalModelSource:
    """Read models straight from the local filesystem."""

    async def fetch_model(self, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(Path(path).read_bytes)
        except OSError as exc:
            raise ModelLoadError(f"Unable to read model {path!s}: {exc}") from exc

    async def fetch_texture(self, path: Path) -> Image.Image | None:
        return await asyncio.to_thread(self._load_texture, Path(path))

    @staticmethod
    def _load_texture(path: Path) -> Image.Image | None:
        try:
            texture_path = resolve_texture(path)
            if texture_path is None:
                return None
            with Image.open(texture_path) as image:
                return image.convert("RGBA")
        except (OSError, UnidentifiedImageError, ValueError):
            logger.warning("Texture for %s could not be loaded; rendering untextured", path, exc_info=True)
            return None


class HttpModelSource:
    """Fetch models from a running asset browser server."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        *,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": "Asset Browser Preview"})

    async def fetch_model(self, path: Path) -> bytes:
        try:
            response = await asyncio.to_thread(self._make_request, "api/file", path)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ModelLoadError(f"Failed to download model {path!s}: {exc}") from exc
        return response.content

    async def fetch_texture(self, path: Path) -> Image.Image | None:
        try:
            response = await asyncio.to_thread(self._make_request, "api/model-texture", path)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            with Image.open(io.BytesIO(response.content)) as image:
                return image.convert("RGBA")
        except (requests.RequestException, OSError, UnidentifiedImageError) as exc:
            logger.warning("Texture for %s unavailable: %s", path, exc)
            return None

    def _make_request(self, endpoint: str, path: Path) -> requests.Response:
        url = urllib.parse.urljoin(self.base_url, endpoint)
        return self.session.get(url, params={"path": str(path)}, timeout=self.timeout)
