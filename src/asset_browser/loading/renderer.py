"""Software rendering contexts, surfaces and the auto-rotation loop."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Final, Protocol, runtime_checkable

import numpy as np
from PIL import Image, ImageDraw

from .scene import Camera, SceneNode

__all__ = [
    "ROTATION_STEP",
    "ImageSurface",
    "RenderLoop",
    "RenderSurface",
    "SoftwareRenderer",
]

logger = logging.getLogger(__name__)

ROTATION_STEP: Final[float] = 0.008
"""Radians the preview turns around its vertical axis on every frame."""

_SUPERSAMPLE: Final[int] = 2
_LIGHT_DIRECTION: Final[tuple[float, float, float]] = (0.45, 0.55, 0.7)
_AMBIENT: Final[float] = 0.35

RGBA = tuple[int, int, int, int]


@runtime_checkable
class RenderSurface(Protocol):
    """Destination for frames produced by a rendering context."""

    @property
    def size(self) -> tuple[int, int]: ...

    @property
    def attached(self) -> bool: ...

    def bind(self, context: SoftwareRenderer) -> None: ...

    def present(self, frame: Image.Image) -> None: ...

    def unbind(self, context: SoftwareRenderer) -> None: ...


class ImageSurface:
    """Headless surface that keeps the most recent frame in memory."""

    def __init__(self, width: int = 320, height: int = 240) -> None:
        if width < 1 or height < 1:
            raise ValueError("Surface dimensions must be positive")
        self._size = (int(width), int(height))
        self._attached = True
        self._context: SoftwareRenderer | None = None
        self.last_frame: Image.Image | None = None
        self.frames_presented = 0

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def context(self) -> SoftwareRenderer | None:
        return self._context

    def bind(self, context: SoftwareRenderer) -> None:
        self._context = context

    def present(self, frame: Image.Image) -> None:
        self.last_frame = frame
        self.frames_presented += 1

    def unbind(self, context: SoftwareRenderer) -> None:
        if self._context is context:
            self._context = None

    def detach(self) -> None:
        """Simulate the surface leaving the screen."""

        self._attached = False


class SoftwareRenderer:
    """Isolated rendering context drawing flat-shaded triangles with Pillow.

    Every preview owns one instance; nothing is shared between contexts.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        background: RGBA = (17, 24, 39, 255),
    ) -> None:
        self._width = max(1, int(width))
        self._height = max(1, int(height))
        self._background = background
        self._released = False
        light = np.array(_LIGHT_DIRECTION, dtype=float)
        self._light = light / np.linalg.norm(light)

    @property
    def size(self) -> tuple[int, int]:
        return self._width, self._height

    @property
    def released(self) -> bool:
        return self._released

    def render(self, scene: SceneNode, camera: Camera) -> Image.Image:
        """Draw *scene* as seen from *camera* and return the frame."""

        if self._released:
            raise RuntimeError("Rendering context has been released")

        width, height = self._width * _SUPERSAMPLE, self._height * _SUPERSAMPLE
        focal = (height / 2) / math.tan(math.radians(camera.fov) / 2)
        view = camera.view_matrix()

        polygons: list[tuple[float, list[tuple[float, float]], RGBA]] = []
        for node, world in scene.iter_meshes():
            geometry = node.geometry
            assert geometry is not None
            matrix = view @ world
            points = np.asarray(geometry.vertices, dtype=float) @ matrix[:3, :3].T + matrix[:3, 3]
            faces = np.asarray(geometry.faces, dtype=np.int32)
            triangles = points[faces]

            # Only triangles completely in front of the near plane are drawn.
            visible = (triangles[:, :, 2] < -camera.near).all(axis=1)
            if not visible.any():
                continue

            normals = np.cross(
                triangles[:, 1] - triangles[:, 0],
                triangles[:, 2] - triangles[:, 0],
            )
            lengths = np.linalg.norm(normals, axis=1)
            valid = lengths > 0
            normals[valid] /= lengths[valid][:, None]
            intensity = np.abs(normals @ self._light)
            shade = _AMBIENT + (1.0 - _AMBIENT) * intensity

            with np.errstate(divide="ignore", invalid="ignore"):
                screen_x = points[:, 0] / -points[:, 2] * focal + width / 2
                screen_y = height / 2 - points[:, 1] / -points[:, 2] * focal

            colors = _face_colors(node, faces)
            depths = triangles[:, :, 2].mean(axis=1)
            for index in np.flatnonzero(visible):
                face = faces[index]
                polygon = [(float(screen_x[i]), float(screen_y[i])) for i in face]
                base = colors[index]
                color = tuple(int(round(channel * shade[index])) for channel in base[:3])
                polygons.append((float(depths[index]), polygon, (*color, int(base[3]))))  # type: ignore[arg-type]

        image = Image.new("RGBA", (width, height), self._background)
        draw = ImageDraw.Draw(image, "RGBA")
        # Painter's algorithm: the most distant triangles are drawn first.
        for _, polygon, color in sorted(polygons, key=lambda item: item[0]):
            draw.polygon(polygon, fill=color)

        return image.resize((self._width, self._height), Image.Resampling.LANCZOS)

    def release(self) -> None:
        self._released = True


class RenderLoop:
    """Animation task that spins *group* and presents frames to *surface*.

    Frames are only rendered while the surface reports itself attached.
    Rasterisation runs in a worker thread; frames are presented on the
    event loop.
    """

    def __init__(
        self,
        renderer: SoftwareRenderer,
        surface: RenderSurface,
        group: SceneNode,
        camera: Camera,
        *,
        frame_interval: float = 1 / 30,
        rotation_step: float = ROTATION_STEP,
    ) -> None:
        self._renderer = renderer
        self._surface = surface
        self._group = group
        self._camera = camera
        self._frame_interval = max(0.0, float(frame_interval))
        self._rotation_step = rotation_step
        self._task: asyncio.Task[None] | None = None
        self._stopped = False
        self.frames_rendered = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        """Schedule the loop on the running event loop."""

        if self._stopped:
            raise RuntimeError("Render loop has already been stopped")
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def render_frame(self) -> None:
        """Advance the rotation by one step and present a single frame."""

        self._group.rotation[1] += self._rotation_step
        frame = self._renderer.render(self._group, self._camera)
        self._surface.present(frame)
        self.frames_rendered += 1

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while not self._stopped:
            if self._surface.attached:
                self._group.rotation[1] += self._rotation_step
                try:
                    frame = await asyncio.to_thread(self._renderer.render, self._group, self._camera)
                except Exception:
                    if self._stopped:
                        return
                    logger.exception("Render loop failed; stopping animation")
                    self._stopped = True
                    return
                # The preview may have been disposed while the frame was rasterised.
                if self._stopped:
                    return
                self._surface.present(frame)
                self.frames_rendered += 1
            await asyncio.sleep(self._frame_interval)



def _face_colors(node: SceneNode, faces: np.ndarray) -> np.ndarray:
    material = node.material
    base = np.array(material.color if material is not None else (184, 209, 240, 255), dtype=float)
    colors = np.tile(base, (len(faces), 1))
    texture = material.texture if material is not None else None
    if texture is None or texture.image is None:
        return colors

    geometry = node.geometry
    if geometry is not None and geometry.uv is not None:
        centres = geometry.uv[faces].mean(axis=1)
        return texture.sample(centres)
    colors[:] = texture.mean_color()
    return colors
