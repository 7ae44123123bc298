"""Configuration helpers for the asset browser preview service."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final

from .utils.paths import coerce_path

__all__ = [
    "AppConfig",
    "DEFAULT_PORT",
    "DEFAULT_START_PATH",
    "PORT_ENV_VAR",
    "START_PATH_ENV_VAR",
    "configure",
    "get_config",
]

START_PATH_ENV_VAR: Final[str] = "ASSET_BROWSER_START_PATH"
"""Environment variable that overrides the directory opened on startup."""

PORT_ENV_VAR: Final[str] = "ASSET_BROWSER_PORT"
"""Environment variable that overrides the HTTP port."""

DEFAULT_START_PATH: Final[Path] = Path.home()
"""Directory browsed when no explicit path is requested."""

DEFAULT_PORT: Final[int] = 3001


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Runtime configuration for the preview pipeline.

    The numeric limits are tuned defaults rather than hard requirements; only
    their relative effect (bounded memory, bounded concurrency) matters.
    """

    start_path: Path
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    thumbnail_size: int = 200
    thumbnail_cache_capacity: int = 100
    max_concurrent_loads: int = 4
    max_loaded_models: int = 15
    idle_threshold: float = 120.0
    sweep_interval: float = 30.0
    frame_interval: float = 1.0 / 30.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_path", coerce_path(self.start_path))
        for name in (
            "thumbnail_size",
            "thumbnail_cache_capacity",
            "max_concurrent_loads",
            "max_loaded_models",
        ):
            if int(getattr(self, name)) < 1:
                raise ValueError(f"{name} must be a positive integer")
        if self.idle_threshold < 0 or self.sweep_interval <= 0 or self.frame_interval <= 0:
            raise ValueError("Timing settings must be positive")


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    """Return the cached :class:`AppConfig` instance."""

    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _build_config()
    return _CONFIG


def configure(*, start_path: str | Path | None = None, **overrides: Any) -> AppConfig:
    """Rebuild the global configuration with optional overrides."""

    global _CONFIG
    config = _build_config(start_path=start_path)
    if overrides:
        config = replace(config, **overrides)
    _CONFIG = config
    return _CONFIG


def _build_config(*, start_path: str | Path | None = None) -> AppConfig:
    port = DEFAULT_PORT
    env_port = os.environ.get(PORT_ENV_VAR)
    if env_port:
        try:
            port = int(env_port)
        except ValueError as exc:
            raise ValueError(f"{PORT_ENV_VAR} must be an integer, got {env_port!r}") from exc

    if start_path is not None:
        normalized = coerce_path(start_path, empty_error="Start path overrides cannot be empty")
        return AppConfig(start_path=normalized, port=port)

    env_value = os.environ.get(START_PATH_ENV_VAR)
    if env_value:
        normalized = coerce_path(env_value, empty_error="Start path overrides cannot be empty")
        return AppConfig(start_path=normalized, port=port)

    return AppConfig(start_path=DEFAULT_START_PATH, port=port)
