"""Qt rendering surface that shows preview frames in a label."""

from __future__ import annotations

import logging

from PIL import Image
from PySide6.QtCore import Qt
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import QLabel, QWidget

from ..loading.renderer import SoftwareRenderer

__all__ = ["PreviewSurface", "pil_to_qimage"]

logger = logging.getLogger(__name__)


def pil_to_qimage(frame: Image.Image) -> QImage:
    """Return an owned :class:`QImage` copy of *frame*."""

    rgba = frame.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    image = QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format_RGBA8888)
    return image.copy()


class PreviewSurface:
    """Adapt a :class:`QLabel` to the rendering surface protocol.

    The label is only considered attached while it is visible, so previews
    scrolled out of view stop rendering frames.
    """

    def __init__(
        self,
        parent: QWidget | None = None,
        *,
        width: int = 320,
        height: int = 240,
    ) -> None:
        self._label = QLabel(parent)
        self._label.setAlignment(Qt.AlignCenter)
        self._label.setMinimumSize(width, height)
        self._label.setStyleSheet("background-color: #111827;")
        self._frame_size = (int(width), int(height))
        self._context: SoftwareRenderer | None = None

    @property
    def widget(self) -> QLabel:
        return self._label

    @property
    def size(self) -> tuple[int, int]:
        return self._frame_size

    @property
    def attached(self) -> bool:
        return self._label.isVisible()

    @property
    def context(self) -> SoftwareRenderer | None:
        return self._context

    def bind(self, context: SoftwareRenderer) -> None:
        if self._context is not None and self._context is not context:
            logger.debug("Preview surface rebound to a new rendering context")
        self._context = context

    def present(self, frame: Image.Image) -> None:
        self._label.setPixmap(QPixmap.fromImage(pil_to_qimage(frame)))

    def unbind(self, context: SoftwareRenderer) -> None:
        if self._context is context:
            self._context = None
            self._label.clear()
