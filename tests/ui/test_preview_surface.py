from __future__ import annotations

import pytest
from PIL import Image

pytest.importorskip("PySide6.QtWidgets", exc_type=ImportError)

from asset_browser.loading.renderer import RenderSurface, SoftwareRenderer
from asset_browser.ui.preview_surface import PreviewSurface, pil_to_qimage


def test_pil_frames_convert_to_qimage(qapp):
    frame = Image.new("RGBA", (3, 2), (10, 20, 30, 255))

    image = pil_to_qimage(frame)

    assert (image.width(), image.height()) == (3, 2)
    color = image.pixelColor(1, 1)
    assert (color.red(), color.green(), color.blue()) == (10, 20, 30)


def test_surface_shows_presented_frames(qapp):
    surface = PreviewSurface(width=40, height=30)
    renderer = SoftwareRenderer(*surface.size)

    assert isinstance(surface, RenderSurface)
    assert not surface.attached

    surface.widget.show()
    qapp.processEvents()
    assert surface.attached

    surface.bind(renderer)
    surface.present(Image.new("RGBA", surface.size, (255, 0, 0, 255)))
    assert surface.context is renderer
    assert not surface.widget.pixmap().isNull()

    surface.unbind(renderer)
    assert surface.context is None
    assert surface.widget.pixmap().isNull()

    surface.widget.deleteLater()
