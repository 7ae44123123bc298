"""Tests for asset classification."""

from __future__ import annotations

from pathlib import Path

import pytest

from asset_browser.assets import AssetType, classify, is_supported


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("hero.PNG", AssetType.IMAGE),
        ("icon.svg", AssetType.IMAGE),
        ("terrain.tga", AssetType.IMAGE),
        ("ship.glb", AssetType.MODEL),
        ("ship.FBX", AssetType.MODEL),
        ("part.stl", AssetType.MODEL),
        ("theme.ogg", AssetType.AUDIO),
        ("intro.webm", AssetType.VIDEO),
        ("readme.md", AssetType.DOCUMENT),
        ("title.woff2", AssetType.FONT),
        ("archive.zip", AssetType.UNKNOWN),
        ("Makefile", AssetType.UNKNOWN),
    ],
)
def test_classify_by_extension(name: str, expected: AssetType) -> None:
    assert classify(name) is expected


def test_classify_does_not_touch_filesystem(tmp_path: Path) -> None:
    folder = tmp_path / "looks_like.png"
    folder.mkdir()

    # Directories are recognised by callers; the classifier only sees a name.
    assert classify(folder) is AssetType.IMAGE
    assert classify(tmp_path / "missing.obj") is AssetType.MODEL


def test_is_supported() -> None:
    assert is_supported("model.gltf")
    assert not is_supported("notes.docx")
