"""Tests covering thumbnail generation and caching."""

from __future__ import annotations

import io
import os
from pathlib import Path

import pytest
from PIL import Image

from asset_browser.assets import AssetNotFoundError, AssetType
from asset_browser.thumbnails import (
    DEFAULT_THUMBNAIL_SIZE,
    ThumbnailCache,
    ThumbnailGenerator,
)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class CountingGenerator(ThumbnailGenerator):
    """Generator that records every uncached render."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.render_calls: list[tuple[Path, AssetType, int]] = []

    def render(self, path: Path, asset_type: AssetType, size: int) -> bytes:
        self.render_calls.append((path, asset_type, size))
        return super().render(path, asset_type, size)


@pytest.fixture()
def generator() -> CountingGenerator:
    return CountingGenerator(ThumbnailCache(capacity=16))


def _save_image(path: Path, size: tuple[int, int], color=(220, 30, 30, 255)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path)
    return path


def _decode(payload: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(payload))
    image.load()
    return image


def test_image_thumbnail_preserves_aspect_ratio(tmp_path: Path, generator: CountingGenerator) -> None:
    source = _save_image(tmp_path / "banner.png", (400, 200))

    result = generator.thumbnail(source, 100)

    assert result.media_type == "image/png"
    assert result.image_bytes.startswith(PNG_SIGNATURE)
    image = _decode(result.image_bytes)
    assert image.size == (100, 100)
    assert image.getchannel("A").getbbox() == (0, 25, 100, 75)


def test_default_size(tmp_path: Path, generator: CountingGenerator) -> None:
    source = _save_image(tmp_path / "square.png", (32, 32))

    image = _decode(generator.thumbnail(source).image_bytes)

    assert image.size == (DEFAULT_THUMBNAIL_SIZE, DEFAULT_THUMBNAIL_SIZE)


def test_second_request_is_served_from_cache(tmp_path: Path, generator: CountingGenerator) -> None:
    source = _save_image(tmp_path / "hero.png", (64, 48))

    first = generator.thumbnail(source, 64)
    second = generator.thumbnail(source, 64)

    assert not first.cached
    assert second.cached
    assert second.image_bytes == first.image_bytes
    assert len(generator.render_calls) == 1


def test_different_sizes_are_cached_separately(tmp_path: Path, generator: CountingGenerator) -> None:
    source = _save_image(tmp_path / "hero.png", (64, 48))

    generator.thumbnail(source, 32)
    generator.thumbnail(source, 64)

    assert len(generator.render_calls) == 2
    assert len(generator.cache) == 2


def test_modified_file_is_regenerated(tmp_path: Path, generator: CountingGenerator) -> None:
    source = _save_image(tmp_path / "hero.png", (64, 48))
    os.utime(source, ns=(1_000_000_000, 1_000_000_000))
    generator.thumbnail(source, 64)

    _save_image(source, (48, 64), color=(10, 200, 10, 255))
    os.utime(source, ns=(5_000_000_000, 5_000_000_000))
    result = generator.thumbnail(source, 64)

    assert not result.cached
    assert len(generator.render_calls) == 2
    assert _decode(result.image_bytes).getchannel("A").getbbox() == (8, 0, 56, 64)


def test_corrupt_image_falls_back_to_icon(tmp_path: Path, generator: CountingGenerator) -> None:
    source = tmp_path / "broken.png"
    source.write_bytes(b"definitely not a png")

    result = generator.thumbnail(source, 64)

    assert result.media_type == "image/png"
    assert _decode(result.image_bytes).size == (64, 64)


def test_svg_is_passed_through_uncached(tmp_path: Path, generator: CountingGenerator) -> None:
    source = tmp_path / "logo.svg"
    markup = b'<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"/>'
    source.write_bytes(markup)

    result = generator.thumbnail(source, 64)

    assert result.media_type == "image/svg+xml"
    assert result.image_bytes == markup
    assert not result.cached
    assert len(generator.cache) == 0
    assert generator.render_calls == []


def test_oversized_image_falls_back_to_icon(
    tmp_path: Path, generator: CountingGenerator, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = _save_image(tmp_path / "huge.png", (400, 400))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10_000)

    result = generator.thumbnail(source, 64)

    assert result.media_type == "image/png"
    assert _decode(result.image_bytes).size == (64, 64)


def test_unreadable_svg_falls_back_to_icon(
    tmp_path: Path, generator: CountingGenerator, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = tmp_path / "logo.svg"
    source.write_bytes(b'<svg xmlns="http://www.w3.org/2000/svg"/>')
    original_read_bytes = Path.read_bytes

    def failing_read_bytes(self: Path) -> bytes:
        if self.name == "logo.svg":
            raise PermissionError(13, "Permission denied", str(self))
        return original_read_bytes(self)

    monkeypatch.setattr(Path, "read_bytes", failing_read_bytes)

    result = generator.thumbnail(source, 64)

    assert result.media_type == "image/png"
    assert _decode(result.image_bytes).size == (64, 64)
    assert not result.cached


def test_non_visual_assets_get_type_panel(tmp_path: Path, generator: CountingGenerator) -> None:
    source = tmp_path / "theme.mp3"
    source.write_bytes(b"ID3")

    result = generator.thumbnail(source, 48)

    assert _decode(result.image_bytes).size == (48, 48)
    assert generator.render_calls[0][1] is AssetType.AUDIO


def test_missing_file_raises(tmp_path: Path, generator: CountingGenerator) -> None:
    with pytest.raises(AssetNotFoundError):
        generator.thumbnail(tmp_path / "missing.png", 64)


def test_invalid_size_rejected(tmp_path: Path, generator: CountingGenerator) -> None:
    source = _save_image(tmp_path / "hero.png", (8, 8))

    with pytest.raises(ValueError):
        generator.thumbnail(source, 0)


def test_model_thumbnail_uses_resolved_texture(tmp_path: Path, box_obj_path: Path) -> None:
    texture = _save_image(box_obj_path.with_name("crate_diffuse.png"), (16, 8), color=(30, 60, 220, 255))
    calls: list[Path] = []

    def resolver(model: Path) -> Path | None:
        calls.append(model)
        return texture

    textured = ThumbnailGenerator(texture_resolver=resolver).thumbnail(box_obj_path, 96)
    untextured = ThumbnailGenerator(texture_resolver=lambda model: None).thumbnail(box_obj_path, 96)

    assert calls == [box_obj_path]
    assert _decode(textured.image_bytes).size == (96, 96)
    assert _decode(untextured.image_bytes).size == (96, 96)
    assert textured.image_bytes != untextured.image_bytes


def test_unreadable_texture_falls_back_to_icon(tmp_path: Path, box_obj_path: Path) -> None:
    bogus = box_obj_path.with_name("crate.png")
    bogus.write_bytes(b"broken")

    result = ThumbnailGenerator().thumbnail(box_obj_path, 64)
    icon = ThumbnailGenerator(texture_resolver=lambda model: None).thumbnail(box_obj_path, 64)

    assert result.image_bytes == icon.image_bytes


def test_model_texture_lookup(tmp_path: Path, box_obj_path: Path, generator: CountingGenerator) -> None:
    with pytest.raises(AssetNotFoundError):
        generator.model_texture(box_obj_path)

    texture = _save_image(box_obj_path.parent / "textures" / "crate.png", (4, 4))

    assert generator.model_texture(box_obj_path) == texture

    with pytest.raises(AssetNotFoundError):
        generator.model_texture(tmp_path / "missing.obj")


def test_folder_preview_uses_representative_image(tmp_path: Path, generator: CountingGenerator) -> None:
    folder = tmp_path / "pack"
    image = _save_image(folder / "cover.png", (40, 20))
    (folder / "theme.wav").write_bytes(b"RIFF")

    first = generator.folder_preview(folder, 80)
    second = generator.folder_preview(folder, 80)

    assert first.path == image
    assert not first.cached
    assert second.cached
    assert len(generator.render_calls) == 1
    assert _decode(first.image_bytes).getchannel("A").getbbox() == (0, 20, 80, 60)
    (key,) = generator.cache.keys()
    assert key.kind.startswith("folder:")


def test_folder_and_file_previews_are_cached_apart(tmp_path: Path, generator: CountingGenerator) -> None:
    folder = tmp_path / "pack"
    image = _save_image(folder / "cover.png", (40, 20))

    generator.thumbnail(image, 80)
    generator.folder_preview(folder, 80)

    assert len(generator.cache) == 2


def test_folder_preview_for_audio_only_folder(tmp_path: Path, generator: CountingGenerator) -> None:
    folder = tmp_path / "sounds"
    folder.mkdir()
    (folder / "theme.ogg").write_bytes(b"OggS")

    result = generator.folder_preview(folder, 64)

    assert _decode(result.image_bytes).size == (64, 64)
    assert generator.render_calls == []


def test_folder_preview_errors(tmp_path: Path, generator: CountingGenerator) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    with pytest.raises(AssetNotFoundError):
        generator.folder_preview(empty, 64)
    with pytest.raises(AssetNotFoundError):
        generator.folder_preview(tmp_path / "missing", 64)
