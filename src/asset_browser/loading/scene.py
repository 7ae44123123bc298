"""Minimal scene graph used by interactive model previews.

Nodes own their geometry, material and texture resources and release them
through a single recursive :meth:`SceneNode.dispose` call, so the load queue
never needs to know how a scene was assembled.
"""

from __future__ import annotations

import io
import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Final

import numpy as np
import trimesh
from PIL import Image

__all__ = [
    "PARSEABLE_EXTENSIONS",
    "REFERENCE_SIZE",
    "Camera",
    "Geometry",
    "Material",
    "ModelLoadError",
    "SceneNode",
    "Texture",
    "UnsupportedModelFormatError",
    "compose_rotation_matrix",
    "frame_model",
    "parse_model",
]

logger = logging.getLogger(__name__)

PARSEABLE_EXTENSIONS: Final[dict[str, str]] = {
    ".glb": "glb",
    ".gltf": "gltf",
    ".obj": "obj",
    ".ply": "ply",
    ".stl": "stl",
}
"""Model formats the preview can parse, mapped to trimesh file types."""

_FLIPPED_UV_EXTENSIONS: Final[frozenset[str]] = frozenset({".obj"})

REFERENCE_SIZE: Final[float] = 3.0
"""Edge length the largest model dimension is scaled to."""

_CAMERA_PADDING: Final[float] = 0.8
_CAMERA_DIRECTION: Final[tuple[float, float, float]] = (0.8, 0.4, 0.6)


class ModelLoadError(RuntimeError):
    """Raised when a model cannot be turned into a renderable scene."""


class UnsupportedModelFormatError(ModelLoadError):
    """Raised for recognised model formats the preview cannot parse."""


@dataclass(eq=False)
class Texture:
    """Colour image bound to a material."""

    image: Image.Image | None
    flip_y: bool = False
    disposed: bool = False
    _pixels: np.ndarray | None = field(default=None, init=False, repr=False)

    def sample(self, uv: np.ndarray) -> np.ndarray:
        """Return RGBA colours (as floats) at the ``(N, 2)`` coordinates *uv*."""

        pixels = self._rgba()
        height, width = pixels.shape[:2]
        u = np.mod(uv[:, 0], 1.0)
        v = np.mod(uv[:, 1], 1.0)
        if self.flip_y:
            v = 1.0 - v
        cols = np.clip((u * (width - 1)).round().astype(int), 0, width - 1)
        rows = np.clip((v * (height - 1)).round().astype(int), 0, height - 1)
        return pixels[rows, cols]

    def mean_color(self) -> np.ndarray:
        return self._rgba().reshape(-1, 4).mean(axis=0)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if self.image is not None:
            self.image.close()
            self.image = None
        self._pixels = None

    def _rgba(self) -> np.ndarray:
        if self.image is None:
            raise ModelLoadError("Texture has been disposed")
        if self._pixels is None:
            self._pixels = np.asarray(self.image.convert("RGBA"), dtype=float)
        return self._pixels


@dataclass(eq=False)
class Material:
    """Surface description of a mesh."""

    color: tuple[int, int, int, int] = (184, 209, 240, 255)
    texture: Texture | None = None
    disposed: bool = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if self.texture is not None:
            self.texture.dispose()
            self.texture = None


@dataclass(eq=False)
class Geometry:
    """Triangle mesh buffers."""

    vertices: np.ndarray
    faces: np.ndarray
    uv: np.ndarray | None = None
    disposed: bool = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self.vertices = np.empty((0, 3), dtype=np.float32)
        self.faces = np.empty((0, 3), dtype=np.int32)
        self.uv = None


@dataclass(eq=False)
class SceneNode:
    """Transformable node that may carry a mesh and any number of children."""

    name: str = ""
    geometry: Geometry | None = None
    material: Material | None = None
    children: list[SceneNode] = field(default_factory=list)
    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=float))
    rotation: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=float))
    scale: float = 1.0
    disposed: bool = False

    def add(self, child: SceneNode) -> SceneNode:
        self.children.append(child)
        return child

    def traverse(self) -> Iterator[SceneNode]:
        """Yield this node and all descendants depth-first."""

        yield self
        for child in self.children:
            yield from child.traverse()

    def local_matrix(self) -> np.ndarray:
        matrix = np.eye(4, dtype=float)
        matrix[:3, :3] = compose_rotation_matrix(*self.rotation) * float(self.scale)
        matrix[:3, 3] = self.position
        return matrix

    def iter_meshes(self, parent: np.ndarray | None = None) -> Iterator[tuple[SceneNode, np.ndarray]]:
        """Yield ``(node, world_matrix)`` for every node that carries geometry."""

        world = self.local_matrix() if parent is None else parent @ self.local_matrix()
        if self.geometry is not None and not self.geometry.disposed and len(self.geometry.faces):
            yield self, world
        for child in self.children:
            yield from child.iter_meshes(world)

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray] | None:
        """Return world-space ``(minimum, maximum)`` corners, or ``None`` when empty."""

        minimum: np.ndarray | None = None
        maximum: np.ndarray | None = None
        for node, world in self.iter_meshes():
            points = _transform_points(world, node.geometry.vertices)  # type: ignore[union-attr]
            if not len(points):
                continue
            low, high = points.min(axis=0), points.max(axis=0)
            minimum = low if minimum is None else np.minimum(minimum, low)
            maximum = high if maximum is None else np.maximum(maximum, high)
        if minimum is None or maximum is None:
            return None
        return minimum, maximum

    def dispose(self) -> None:
        """Release geometry, materials and textures of the whole subtree."""

        if self.disposed:
            return
        for node in list(self.traverse()):
            if node.geometry is not None:
                node.geometry.dispose()
            if node.material is not None:
                node.material.dispose()
            node.disposed = True
        self.children.clear()


@dataclass(eq=False)
class Camera:
    """Perspective camera looking at :attr:`target`."""

    fov: float = 50.0
    near: float = 0.1
    far: float = 1000.0
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 5.0]))
    target: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=float))

    def view_matrix(self) -> np.ndarray:
        """Return the world-to-camera matrix (camera looks down ``-z``)."""

        forward = self.target - self.position
        length = np.linalg.norm(forward)
        forward = forward / length if length > 0 else np.array([0.0, 0.0, -1.0])
        up = np.array([0.0, 1.0, 0.0])
        if abs(float(np.dot(forward, up))) > 0.999:
            up = np.array([0.0, 0.0, 1.0])
        right = np.cross(forward, up)
        right /= np.linalg.norm(right)
        true_up = np.cross(right, forward)

        view = np.eye(4, dtype=float)
        view[0, :3] = right
        view[1, :3] = true_up
        view[2, :3] = -forward
        view[:3, 3] = -view[:3, :3] @ self.position
        return view


def parse_model(
    data: bytes,
    extension: str,
    *,
    texture: Image.Image | None = None,
    name: str = "model",
) -> SceneNode:
    """Parse raw model *data* into a scene node carrying a single mesh.

    Raises
    ------
    UnsupportedModelFormatError
        If *extension* is not one of :data:`PARSEABLE_EXTENSIONS`.
    ModelLoadError
        If the bytes cannot be parsed or contain no triangles.
    """

    suffix = extension.lower() if extension.startswith(".") else f".{extension.lower()}"
    file_type = PARSEABLE_EXTENSIONS.get(suffix)
    label = suffix.lstrip(".").upper() or "3D"
    if file_type is None:
        raise UnsupportedModelFormatError(f"Unsupported 3D model format: {label}")

    try:
        mesh = trimesh.load(io.BytesIO(data), file_type=file_type, force="mesh")
    except Exception as exc:  # noqa: BLE001 - trimesh raises a wide range of errors
        raise ModelLoadError(f"Could not parse {label} model: {exc}") from exc

    if isinstance(mesh, trimesh.Scene):
        if not mesh.geometry:
            raise ModelLoadError(f"{label} model contains no renderable geometry")
        mesh = trimesh.util.concatenate(tuple(mesh.geometry.values()))

    if not isinstance(mesh, trimesh.Trimesh) or mesh.vertices is None or mesh.faces is None:
        raise ModelLoadError(f"{label} model contains no renderable geometry")

    vertices = np.asarray(mesh.vertices, dtype=np.float32).reshape(-1, 3)
    faces = np.asarray(mesh.faces, dtype=np.int32).reshape(-1, 3)
    if not len(vertices) or not len(faces):
        raise ModelLoadError(f"{label} model contains no renderable geometry")

    uv = _extract_uv(mesh, len(vertices))
    material = Material()
    if texture is not None:
        material.texture = Texture(texture, flip_y=suffix in _FLIPPED_UV_EXTENSIONS)

    return SceneNode(
        name=name,
        geometry=Geometry(vertices=vertices, faces=faces, uv=uv),
        material=material,
    )


def frame_model(model: SceneNode, camera: Camera, *, reference_size: float = REFERENCE_SIZE) -> SceneNode:
    """Centre *model* at the origin, normalise its size and aim *camera* at it.

    Returns the wrapping group node; rotating the group spins the model
    around its own centre.
    """

    bounds = model.bounding_box()
    if bounds is None:
        raise ModelLoadError("Model contains no renderable geometry")

    minimum, maximum = bounds
    centre = (minimum + maximum) / 2.0
    max_dimension = float((maximum - minimum).max())
    if not math.isfinite(max_dimension) or max_dimension <= 0:
        max_dimension = 1.0

    model.position = model.position - centre
    group = SceneNode(name=f"{model.name}-group", children=[model])
    group.scale = reference_size / max_dimension

    radius = reference_size * math.sqrt(3.0) / 2.0
    distance = radius / math.sin(math.radians(camera.fov) / 2.0) * _CAMERA_PADDING
    camera.position = np.array(_CAMERA_DIRECTION, dtype=float) * distance
    camera.target = np.zeros(3, dtype=float)
    return group


_ROTATION_PLANES: Final[tuple[tuple[int, int], ...]] = ((1, 2), (2, 0), (0, 1))


def compose_rotation_matrix(rx: float, ry: float, rz: float) -> np.ndarray:
    """Return the 3x3 matrix applying *rx*, *ry* then *rz* (radians) about the world axes."""

    matrix = np.eye(3, dtype=float)
    for axis, angle in enumerate((rx, ry, rz)):
        if angle:
            matrix = _axis_rotation(axis, float(angle)) @ matrix
    return matrix


def _axis_rotation(axis: int, angle: float) -> np.ndarray:
    first, second = _ROTATION_PLANES[axis]
    cosine, sine = math.cos(angle), math.sin(angle)
    rotation = np.eye(3, dtype=float)
    rotation[first, first] = rotation[second, second] = cosine
    rotation[first, second] = -sine
    rotation[second, first] = sine
    return rotation


def _transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    points = np.asarray(points, dtype=float)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def _extract_uv(mesh: object, vertex_count: int) -> np.ndarray | None:
    visual = getattr(mesh, "visual", None)
    uv = getattr(visual, "uv", None)
    if uv is None:
        return None
    uv = np.asarray(uv, dtype=float)
    if uv.ndim != 2 or uv.shape != (vertex_count, 2):
        logger.debug("Ignoring UV coordinates with shape %s", uv.shape)
        return None
    return uv
