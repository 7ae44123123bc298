"""Interactive 3D model previews: scene graph, rendering and the load queue."""

from .cancellation import CancellationToken, LoadCancelled
from .queue import (
    LoadedModelHandle,
    LoadState,
    ModelLoadQueue,
    ModelLoadRequest,
    ModelSceneLoader,
)
from .renderer import ImageSurface, RenderLoop, RenderSurface, SoftwareRenderer
from .scene import (
    Camera,
    ModelLoadError,
    SceneNode,
    UnsupportedModelFormatError,
    frame_model,
    parse_model,
)
from .sources import HttpModelSource, LocalModelSource, ModelSource

__all__ = [
    "Camera",
    "CancellationToken",
    "HttpModelSource",
    "ImageSurface",
    "LoadCancelled",
    "LoadState",
    "LoadedModelHandle",
    "LocalModelSource",
    "ModelLoadError",
    "ModelLoadQueue",
    "ModelLoadRequest",
    "ModelSceneLoader",
    "ModelSource",
    "RenderLoop",
    "RenderSurface",
    "SceneNode",
    "SoftwareRenderer",
    "UnsupportedModelFormatError",
    "frame_model",
    "parse_model",
]
