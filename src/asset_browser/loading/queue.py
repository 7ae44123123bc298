"""Bounded-concurrency, cancellable loading of interactive model previews.

The queue runs entirely on one asyncio event loop. Loads are cooperative
tasks: at most ``max_concurrent`` of them are in flight at a time, the rest
wait in a priority heap. Loaded previews stay resident until they are idle
for too long and the number of resident previews exceeds ``max_loaded``.

All public methods must be called from the thread running the event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .cancellation import CancellationToken, LoadCancelled
from .renderer import RenderLoop, RenderSurface, SoftwareRenderer
from .scene import Camera, SceneNode, frame_model, parse_model
from .sources import LocalModelSource, ModelSource

if TYPE_CHECKING:
    from ..config import AppConfig

__all__ = [
    "DEFAULT_IDLE_THRESHOLD",
    "DEFAULT_MAX_CONCURRENT",
    "DEFAULT_MAX_LOADED",
    "DEFAULT_SWEEP_INTERVAL",
    "LoadState",
    "LoadedModelHandle",
    "ModelLoadQueue",
    "ModelLoadRequest",
    "ModelSceneLoader",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 4
DEFAULT_MAX_LOADED = 15
DEFAULT_IDLE_THRESHOLD = 120.0
"""Seconds after which an unused preview becomes eligible for eviction."""
DEFAULT_SWEEP_INTERVAL = 30.0

SurfaceRef = RenderSurface | Callable[[], RenderSurface | None] | None


class LoadState(str, Enum):
    QUEUED = "queued"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"
    ABORTED = "aborted"


@dataclass(slots=True)
class ModelLoadRequest:
    """Ask for the model at ``model_path`` to be shown on ``surface``.

    ``surface`` is either the surface itself or a zero-argument callable such
    as a :class:`weakref.ref` that returns ``None`` once the surface is gone.
    """

    id: str
    model_path: Path
    surface: SurfaceRef = None
    priority: int = 0
    on_load: Callable[[LoadedModelHandle], None] | None = None
    on_error: Callable[[str], None] | None = None

    def resolve_surface(self) -> RenderSurface | None:
        target = self.surface
        if target is None:
            return None
        if isinstance(target, RenderSurface):
            return target
        return target()


class LoadedModelHandle:
    """A resident preview: scene, rendering context and animation task."""

    def __init__(
        self,
        id: str,
        model_path: Path,
        scene_root: SceneNode,
        renderer: SoftwareRenderer,
        render_loop: RenderLoop,
        camera: Camera,
        surface: RenderSurface,
        *,
        last_used: float = 0.0,
    ) -> None:
        self.id = id
        self.model_path = model_path
        self.scene_root = scene_root
        self.renderer = renderer
        self.render_loop = render_loop
        self.camera = camera
        self.surface = surface
        self.last_used = last_used
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Stop animating and release every resource of the preview.

        Safe to call repeatedly; failures are logged, never raised.
        """

        if self._disposed:
            return
        self._disposed = True
        steps: tuple[Callable[[], None], ...] = (
            self.render_loop.stop,
            self.scene_root.dispose,
            self.renderer.release,
            lambda: self.surface.unbind(self.renderer),
        )
        for step in steps:
            try:
                step()
            except Exception:
                logger.exception("Error while disposing preview %s", self.id)


class SceneLoader(Protocol):
    async def load(
        self,
        request: ModelLoadRequest,
        token: CancellationToken,
    ) -> LoadedModelHandle | None: ...


class ModelSceneLoader:
    """Build a :class:`LoadedModelHandle` for a request.

    Returns ``None`` when the request's surface no longer exists. Raises
    :class:`LoadCancelled` at the first checkpoint after *token* is
    cancelled; anything built up to then is released first.
    """

    def __init__(
        self,
        source: ModelSource | None = None,
        *,
        frame_interval: float = 1 / 30,
        animate: bool = True,
    ) -> None:
        self._source = source if source is not None else LocalModelSource()
        self._frame_interval = frame_interval
        self._animate = animate

    async def load(
        self,
        request: ModelLoadRequest,
        token: CancellationToken,
    ) -> LoadedModelHandle | None:
        token.raise_if_cancelled()
        surface = request.resolve_surface()
        if surface is None or not surface.attached:
            logger.debug("Surface for %s is gone; skipping load", request.id)
            return None

        path = Path(request.model_path)
        renderer = SoftwareRenderer(*surface.size)
        surface.bind(renderer)
        texture = None
        model: SceneNode | None = None
        group: SceneNode | None = None
        render_loop: RenderLoop | None = None
        try:
            data = await self._source.fetch_model(path)
            token.raise_if_cancelled()

            try:
                texture = await self._source.fetch_texture(path)
            except Exception:
                logger.warning("Texture lookup failed for %s", path, exc_info=True)
                texture = None
            token.raise_if_cancelled()

            model = await asyncio.to_thread(
                parse_model, data, path.suffix, texture=texture, name=path.stem
            )
            texture = None
            token.raise_if_cancelled()

            camera = Camera()
            group = frame_model(model, camera)
            render_loop = RenderLoop(
                renderer,
                surface,
                group,
                camera,
                frame_interval=self._frame_interval,
            )
            if self._animate:
                render_loop.start()
            token.raise_if_cancelled()
        except BaseException:
            if render_loop is not None:
                render_loop.stop()
            if group is not None:
                group.dispose()
            elif model is not None:
                model.dispose()
            if texture is not None:
                texture.close()
            renderer.release()
            surface.unbind(renderer)
            raise

        return LoadedModelHandle(
            request.id,
            path,
            group,
            renderer,
            render_loop,
            camera,
            surface,
        )


@dataclass(order=True)
class _QueueEntry:
    sort_key: tuple[int, int]
    request: ModelLoadRequest = field(compare=False)
    removed: bool = field(default=False, compare=False)


@dataclass(eq=False)
class _Operation:
    request: ModelLoadRequest
    token: CancellationToken
    task: asyncio.Task[None] | None = None


class ModelLoadQueue:
    """Schedule model loads and keep the loaded previews bounded."""

    def __init__(
        self,
        loader: SceneLoader | None = None,
        *,
        source: ModelSource | None = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_loaded: int = DEFAULT_MAX_LOADED,
        idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if max_loaded < 0:
            raise ValueError("max_loaded must not be negative")
        self._loader: SceneLoader = loader if loader is not None else ModelSceneLoader(source)
        self._max_concurrent = int(max_concurrent)
        self._max_loaded = int(max_loaded)
        self._idle_threshold = float(idle_threshold)
        self._sweep_interval = float(sweep_interval)
        self._clock = clock

        self._heap: list[_QueueEntry] = []
        self._queued: dict[str, _QueueEntry] = {}
        self._in_flight: dict[str, _Operation] = {}
        self._loaded: dict[str, LoadedModelHandle] = {}
        self._states: dict[str, LoadState] = {}
        self._sequence = itertools.count()
        self._sweep_task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        loader: SceneLoader | None = None,
        *,
        source: ModelSource | None = None,
    ) -> ModelLoadQueue:
        if loader is None:
            loader = ModelSceneLoader(source, frame_interval=config.frame_interval)
        return cls(
            loader,
            max_concurrent=config.max_concurrent_loads,
            max_loaded=config.max_loaded_models,
            idle_threshold=config.idle_threshold,
            sweep_interval=config.sweep_interval,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def pending_count(self) -> int:
        return len(self._queued)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def state(self, request_id: str) -> LoadState | None:
        return self._states.get(request_id)

    def loaded_ids(self) -> list[str]:
        return list(self._loaded)

    def handle(self, request_id: str) -> LoadedModelHandle | None:
        return self._loaded.get(request_id)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def submit(self, request: ModelLoadRequest) -> None:
        """Queue *request*, or reuse the preview already loaded for its id."""

        handle = self._loaded.get(request.id)
        if handle is not None:
            handle.last_used = self._clock()
            self._notify_load(request, handle)
            return

        self._discard_queued(request.id)
        operation = self._in_flight.pop(request.id, None)
        if operation is not None:
            logger.debug("Replacing in-flight load of %s", request.id)
            operation.token.cancel("superseded")

        entry = _QueueEntry((-request.priority, next(self._sequence)), request)
        heapq.heappush(self._heap, entry)
        self._queued[request.id] = entry
        self._states[request.id] = LoadState.QUEUED
        self._schedule()

    def cancel(self, request_id: str) -> bool:
        """Abort a queued or in-flight request. Returns ``False`` if neither."""

        if self._discard_queued(request_id):
            self._states[request_id] = LoadState.ABORTED
            return True

        operation = self._in_flight.pop(request_id, None)
        if operation is None:
            return False
        operation.token.cancel()
        self._states[request_id] = LoadState.ABORTED
        self._schedule()
        return True

    def unload(self, request_id: str) -> bool:
        """Dispose the loaded preview for *request_id*, if any."""

        handle = self._loaded.pop(request_id, None)
        if handle is None:
            return False
        self._states.pop(request_id, None)
        handle.dispose()
        return True

    def clear_all(self) -> None:
        """Cancel everything pending and dispose every loaded preview."""

        aborted = [*self._queued, *self._in_flight]
        for entry in self._queued.values():
            entry.removed = True
        self._queued.clear()
        self._heap.clear()

        for operation in self._in_flight.values():
            operation.token.cancel()
        self._in_flight.clear()

        handles = list(self._loaded.items())
        self._loaded.clear()
        for request_id, handle in handles:
            self._states.pop(request_id, None)
            handle.dispose()

        for request_id in aborted:
            self._states[request_id] = LoadState.ABORTED
        logger.info("Cleared %d pending load(s) and %d loaded preview(s)", len(aborted), len(handles))

    # ------------------------------------------------------------------
    # Idle eviction
    # ------------------------------------------------------------------
    def sweep(self, now: float | None = None) -> list[str]:
        """Evict least-recently-used previews while over ``max_loaded``.

        Returns the evicted ids.
        """

        now = self._clock() if now is None else now
        loaded_count = len(self._loaded)
        if loaded_count <= self._max_loaded:
            return []

        snapshot = sorted(self._loaded.items(), key=lambda item: item[1].last_used)
        idle = sum(1 for _, handle in snapshot if now - handle.last_used > self._idle_threshold)
        count = max(idle, loaded_count - self._max_loaded)

        evicted: list[str] = []
        for request_id, handle in snapshot[:count]:
            if self._loaded.pop(request_id, None) is None:
                continue
            self._states.pop(request_id, None)
            handle.dispose()
            evicted.append(request_id)

        if evicted:
            logger.info("Evicted %d idle preview(s); %d resident", len(evicted), len(self._loaded))
        return evicted

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""

        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_periodically())

    def close(self) -> None:
        """Stop the periodic sweep and release everything."""

        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None
        self.clear_all()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def _schedule(self) -> None:
        while self._heap and len(self._in_flight) < self._max_concurrent:
            entry = heapq.heappop(self._heap)
            if entry.removed:
                continue
            request = entry.request
            del self._queued[request.id]

            operation = _Operation(request, CancellationToken())
            self._in_flight[request.id] = operation
            self._states[request.id] = LoadState.LOADING
            operation.task = asyncio.get_running_loop().create_task(self._run(operation))

    async def _run(self, operation: _Operation) -> None:
        request = operation.request
        try:
            handle = await self._loader.load(request, operation.token)
        except LoadCancelled as exc:
            logger.debug("Load of %s cancelled: %s", request.id, exc)
            self._finish(operation, LoadState.ABORTED)
            return
        except asyncio.CancelledError:
            self._finish(operation, LoadState.ABORTED)
            raise
        except Exception as exc:
            logger.exception("Failed to load model %s", request.model_path)
            if self._finish(operation, LoadState.ERRORED):
                self._notify_error(request, str(exc) or type(exc).__name__)
            return

        if handle is None:
            self._finish(operation, LoadState.ABORTED)
            return
        if operation.token.cancelled:
            handle.dispose()
            self._finish(operation, LoadState.ABORTED)
            return

        handle.last_used = self._clock()
        self._loaded[request.id] = handle
        self._finish(operation, LoadState.LOADED)
        self._notify_load(request, handle)
        self.sweep()

    def _finish(self, operation: _Operation, state: LoadState) -> bool:
        """Free the slot of *operation* if it still owns one; report ownership."""

        request_id = operation.request.id
        current = self._in_flight.get(request_id) is operation
        if current:
            del self._in_flight[request_id]
            self._states[request_id] = state
        self._schedule()
        return current

    def _discard_queued(self, request_id: str) -> bool:
        entry = self._queued.pop(request_id, None)
        if entry is None:
            return False
        entry.removed = True
        return True

    async def _sweep_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Idle sweep failed")

    @staticmethod
    def _notify_load(request: ModelLoadRequest, handle: LoadedModelHandle) -> None:
        if request.on_load is None:
            return
        try:
            request.on_load(handle)
        except Exception:
            logger.exception("on_load callback for %s raised", request.id)

    @staticmethod
    def _notify_error(request: ModelLoadRequest, message: str) -> None:
        if request.on_error is None:
            return
        try:
            request.on_error(message)
        except Exception:
            logger.exception("on_error callback for %s raised", request.id)
