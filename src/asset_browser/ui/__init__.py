"""Qt widgets for the desktop preview."""

from .preview_surface import PreviewSurface, pil_to_qimage

__all__ = ["PreviewSurface", "pil_to_qimage"]
