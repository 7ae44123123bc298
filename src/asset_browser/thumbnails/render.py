"""Pillow drawing primitives for thumbnails and synthetic asset icons."""

from __future__ import annotations

import io
from collections.abc import Mapping, Sequence
from functools import lru_cache
from pathlib import Path
from typing import Final

import numpy as np
from PIL import Image, ImageDraw, ImageFont, ImageOps

__all__ = [
    "MODEL_ICON_COLORS",
    "TYPE_PANEL_COLORS",
    "compose_model_thumbnail",
    "draw_model_icon",
    "draw_type_panel",
    "encode_png",
    "letterbox",
    "panel_color_for",
]

RGBA = tuple[int, int, int, int]

_RESAMPLING_FILTER = Image.Resampling.LANCZOS
_SUPERSAMPLE = 2

TEXTURE_BACKGROUND: Final[RGBA] = (42, 42, 42, 255)
PANEL_BACKGROUND: Final[RGBA] = (55, 65, 81, 255)
BADGE_COLOR: Final[RGBA] = (139, 92, 246, 230)
WHITE: Final[RGBA] = (255, 255, 255, 255)

MODEL_ICON_COLORS: Final[Mapping[str, tuple[RGBA, RGBA]]] = {
    ".glb": ((139, 92, 246, 255), (167, 139, 250, 255)),
    ".gltf": ((139, 92, 246, 255), (167, 139, 250, 255)),
    ".fbx": ((6, 182, 212, 255), (103, 232, 249, 255)),
    ".obj": ((16, 185, 129, 255), (110, 231, 183, 255)),
    ".dae": ((245, 158, 11, 255), (251, 191, 36, 255)),
    ".3ds": ((239, 68, 68, 255), (248, 113, 113, 255)),
}
"""Primary and secondary colours of the synthetic cube icon per extension."""

_DEFAULT_MODEL_COLORS: Final[tuple[RGBA, RGBA]] = MODEL_ICON_COLORS[".glb"]

TYPE_PANEL_COLORS: Final[Mapping[str, RGBA]] = {
    "audio": (16, 185, 129, 255),
    "video": (239, 68, 68, 255),
    "document": (245, 158, 11, 255),
    "font": (99, 102, 241, 255),
}
_DEFAULT_PANEL_COLOR: Final[RGBA] = (107, 114, 128, 255)

_FONT_CANDIDATES: Final[tuple[str, ...]] = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


def encode_png(image: Image.Image) -> bytes:
    """Return *image* encoded as PNG bytes."""

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def letterbox(
    image: Image.Image,
    size: int,
    *,
    background: RGBA = (0, 0, 0, 0),
) -> Image.Image:
    """Scale *image* to fit a ``size`` square, keeping its aspect ratio.

    Small images are enlarged as well as large ones reduced. The unused area
    is filled with *background* (transparent by default).
    """

    source = ImageOps.exif_transpose(image).convert("RGBA")
    scale = min(size / source.width, size / source.height)
    fitted = (
        min(size, max(1, round(source.width * scale))),
        min(size, max(1, round(source.height * scale))),
    )
    if fitted != source.size:
        source = source.resize(fitted, _RESAMPLING_FILTER)

    canvas = Image.new("RGBA", (size, size), background)
    offset = ((size - source.width) // 2, (size - source.height) // 2)
    canvas.alpha_composite(source, offset)
    return canvas


def compose_model_thumbnail(texture_path: Path, size: int) -> Image.Image:
    """Render a model thumbnail from its colour texture.

    The texture is fitted onto a dark square, shaded with a soft radial
    vignette and marked with the circular "3D" badge.
    """

    with Image.open(texture_path) as texture:
        texture.load()
        canvas = letterbox(texture, size, background=TEXTURE_BACKGROUND)

    canvas.alpha_composite(_radial_shading(size))
    _draw_badge(canvas, BADGE_COLOR)
    return canvas


def draw_model_icon(extension: str, size: int) -> Image.Image:
    """Draw the stylised cube icon used when a model has no usable texture."""

    primary, secondary = MODEL_ICON_COLORS.get(extension.lower(), _DEFAULT_MODEL_COLORS)
    scale = size * _SUPERSAMPLE
    image = _diagonal_gradient(scale, (55, 65, 81, 255), (31, 41, 55, 255))
    mask = Image.new("L", (scale, scale), 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, scale - 1, scale - 1), radius=scale // 16, fill=255)
    image.putalpha(mask)

    layer = Image.new("RGBA", (scale, scale), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer, "RGBA")
    cx = cy = scale / 2

    def pts(*coords: tuple[float, float]) -> list[tuple[float, float]]:
        return [(cx + x * scale, cy + y * scale) for x, y in coords]

    stroke = max(1, scale // 100)
    faded = _with_alpha(primary, 0.2)
    # back faces
    draw.polygon(pts((-1 / 8, -1 / 5), (1 / 8, -1 / 5), (1 / 6, -1 / 3), (-1 / 6, -1 / 3)), fill=faded, outline=WHITE)
    draw.polygon(pts((1 / 8, -1 / 5), (1 / 6, -1 / 3), (1 / 6, 1 / 6), (1 / 8, 1 / 4)), fill=faded, outline=WHITE)

    front = pts((-1 / 6, -1 / 8), (1 / 6, -1 / 8), (1 / 6, 1 / 3), (-1 / 6, 1 / 3))
    top = pts((-1 / 6, -1 / 8), (-1 / 8, -1 / 3), (1 / 8, -1 / 3), (1 / 6, -1 / 8))
    side = pts((1 / 6, -1 / 8), (1 / 8, -1 / 3), (1 / 8, 1 / 6), (1 / 6, 1 / 3))
    draw.polygon(front, fill=_mix(secondary, primary, 0.5, alpha=0.9), outline=WHITE, width=stroke * 2)
    draw.polygon(top, fill=_with_alpha(secondary, 0.7), outline=WHITE, width=stroke * 2)
    draw.polygon(side, fill=_with_alpha(primary, 0.5), outline=WHITE, width=stroke * 2)
    draw.line([front[0], front[1]], fill=_with_alpha(WHITE, 0.6), width=stroke)

    label = extension.lstrip(".").upper() or "3D"
    _draw_centered_text(draw, label, (cx, scale * 0.82), _font(max(8, scale // 11)), _with_alpha(WHITE, 0.9))

    image.alpha_composite(layer)
    _draw_badge(image, primary, radius=scale * 0.07)
    return image.resize((size, size), _RESAMPLING_FILTER)


def draw_type_panel(
    label: str,
    size: int,
    *,
    subtitle: str | None = None,
    color: RGBA | None = None,
) -> Image.Image:
    """Draw a labelled panel for assets without a visual representation.

    Without *color* the panel is the flat default background; with a colour
    it becomes a diagonal gradient of that tint, as used for folder previews.
    """

    if color is None:
        image = Image.new("RGBA", (size, size), PANEL_BACKGROUND)
    else:
        image = _diagonal_gradient(size, _with_alpha(color, 0.8), _with_alpha(color, 0.4))

    draw = ImageDraw.Draw(image, "RGBA")
    title_y = size * (0.4 if subtitle else 0.5)
    _draw_centered_text(draw, label.upper(), (size / 2, title_y), _font(max(6, size // 8)), WHITE)
    if subtitle:
        _draw_centered_text(
            draw,
            subtitle,
            (size / 2, size * 0.65),
            _font(max(5, size // 16)),
            _with_alpha(WHITE, 0.8),
        )
    return image


def panel_color_for(type_name: str) -> RGBA:
    return TYPE_PANEL_COLORS.get(type_name, _DEFAULT_PANEL_COLOR)


# ----------------------------------------------------------------------
# Internal helpers
# ----------------------------------------------------------------------
def _radial_shading(size: int) -> Image.Image:
    """White-to-black radial overlay centred slightly above the middle."""

    ys, xs = np.mgrid[0:size, 0:size].astype(float)
    centre_x, centre_y = size * 0.5, size * 0.3
    radius = max(size * 0.7, 1.0)
    t = np.clip(np.hypot(xs - centre_x, ys - centre_y) / radius, 0.0, 1.0)

    rgba = np.empty((size, size, 4), dtype=float)
    rgba[..., :3] = (1.0 - t)[..., None] * 255.0
    rgba[..., 3] = (0.1 + 0.1 * t) * 255.0
    return Image.fromarray(np.round(rgba).astype(np.uint8))


def _diagonal_gradient(size: int, start: RGBA, end: RGBA) -> Image.Image:
    ys, xs = np.mgrid[0:size, 0:size].astype(float)
    factor = ((xs + ys) / max(2 * (size - 1), 1))[..., None]
    start_arr = np.array(start, dtype=float)
    end_arr = np.array(end, dtype=float)
    pixels = start_arr + (end_arr - start_arr) * factor
    return Image.fromarray(np.round(pixels).astype(np.uint8))


def _draw_badge(image: Image.Image, color: RGBA, *, radius: float | None = None) -> None:
    width = image.width
    radius = radius if radius is not None else max(6.0, width * 0.06)
    margin = radius + max(2.0, width * 0.04)
    cx, cy = width - margin, margin

    draw = ImageDraw.Draw(image, "RGBA")
    draw.ellipse(
        (cx - radius, cy - radius, cx + radius, cy + radius),
        fill=color,
        outline=WHITE,
        width=max(1, int(radius / 6)),
    )
    _draw_centered_text(draw, "3D", (cx, cy), _font(max(5, int(radius * 0.75))), WHITE)


def _draw_centered_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    centre: tuple[float, float],
    font: ImageFont.ImageFont | ImageFont.FreeTypeFont,
    fill: RGBA,
) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = centre[0] - (right - left) / 2 - left
    y = centre[1] - (bottom - top) / 2 - top
    draw.text((x, y), text, fill=fill, font=font)


@lru_cache(maxsize=32)
def _font(pixel_size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    for name in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, pixel_size)
        except OSError:
            continue
    return ImageFont.load_default(size=pixel_size)


def _with_alpha(color: Sequence[int], opacity: float) -> RGBA:
    red, green, blue = color[:3]
    return (red, green, blue, int(round(255 * opacity)))


def _mix(start: Sequence[int], end: Sequence[int], factor: float, *, alpha: float) -> RGBA:
    blended = [int(round(a + (b - a) * factor)) for a, b in zip(start[:3], end[:3], strict=True)]
    return _with_alpha(blended, alpha)
