"""Tests for folder scanning and representative asset selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from asset_browser.assets import AssetNotFoundError, AssetType
from asset_browser.discovery import (
    describe_path,
    find_representative_asset,
    folder_has_assets,
    list_directory,
)


def _touch(path: Path, content: bytes = b"data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def test_model_preferred_over_image_and_audio(tmp_path: Path) -> None:
    _touch(tmp_path / "a_theme.mp3")
    _touch(tmp_path / "b_cover.png")
    model = _touch(tmp_path / "z_ship.glb")

    asset = find_representative_asset(tmp_path)

    assert asset is not None
    assert asset.path == model
    assert asset.asset_type is AssetType.MODEL


def test_image_preferred_over_other_supported_files(tmp_path: Path) -> None:
    _touch(tmp_path / "a_theme.mp3")
    image = _touch(tmp_path / "b_cover.png")

    asset = find_representative_asset(tmp_path)

    assert asset is not None
    assert asset.path == image


def test_other_supported_file_when_no_visual_asset(tmp_path: Path) -> None:
    _touch(tmp_path / "notes.docx")
    audio = _touch(tmp_path / "theme.wav")

    asset = find_representative_asset(tmp_path)

    assert asset is not None
    assert asset.path == audio
    assert asset.asset_type is AssetType.AUDIO


def test_recurses_one_level_into_subdirectories(tmp_path: Path) -> None:
    _touch(tmp_path / "notes.docx")
    image = _touch(tmp_path / "b" / "preview.jpg")
    _touch(tmp_path / "c" / "ship.obj")

    asset = find_representative_asset(tmp_path)

    # The first subdirectory in name order with any asset wins.
    assert asset is not None
    assert asset.path == image


def test_does_not_recurse_deeper_than_one_level(tmp_path: Path) -> None:
    _touch(tmp_path / "a" / "b" / "ship.glb")

    assert find_representative_asset(tmp_path) is None


def test_missing_folder_yields_none(tmp_path: Path) -> None:
    assert find_representative_asset(tmp_path / "missing") is None


def test_folder_has_assets(tmp_path: Path) -> None:
    assert not folder_has_assets(tmp_path)
    _touch(tmp_path / "font.ttf")
    assert folder_has_assets(tmp_path)


def test_describe_file_and_folder(tmp_path: Path) -> None:
    model = _touch(tmp_path / "pack" / "Crate.OBJ", b"v 0 0 0\n")

    file_record = describe_path(model)
    assert not file_record.is_directory
    assert file_record.asset_type is AssetType.MODEL
    assert file_record.extension == ".obj"
    assert file_record.size == len(b"v 0 0 0\n")
    assert file_record.name == "Crate.OBJ"

    folder_record = describe_path(tmp_path / "pack")
    assert folder_record.is_directory
    assert folder_record.asset_type is AssetType.FOLDER
    assert folder_record.extension is None
    assert folder_record.has_assets
    assert folder_record.first_asset is not None
    assert folder_record.first_asset.path == model


def test_describe_missing_path(tmp_path: Path) -> None:
    with pytest.raises(AssetNotFoundError):
        describe_path(tmp_path / "nothing.png")


def test_list_directory_orders_folders_first(tmp_path: Path) -> None:
    _touch(tmp_path / "b.png")
    _touch(tmp_path / "A.txt")
    (tmp_path / "zeta").mkdir()
    (tmp_path / "Alpha").mkdir()

    names = [record.name for record in list_directory(tmp_path)]

    assert names == ["Alpha", "zeta", "A.txt", "b.png"]


def test_list_directory_errors(tmp_path: Path) -> None:
    file_path = _touch(tmp_path / "file.png")

    with pytest.raises(AssetNotFoundError):
        list_directory(tmp_path / "missing")
    with pytest.raises(NotADirectoryError):
        list_directory(file_path)
