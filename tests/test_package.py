"""Basic smoke tests for the asset_browser package."""

from __future__ import annotations

import importlib


def test_package_importable() -> None:
    """Ensure that the top-level package can be imported."""

    module = importlib.import_module("asset_browser")
    assert module.__version__ == "0.1.0"


def test_core_modules_importable_without_qt() -> None:
    for name in ("assets", "discovery", "textures", "thumbnails", "loading", "api"):
        importlib.import_module(f"asset_browser.{name}")
