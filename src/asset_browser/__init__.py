"""Top-level package for the asset browser preview pipeline.

Submodules are imported lazily by callers; ``asset_browser.ui`` requires
PySide6 and is never imported from here.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
