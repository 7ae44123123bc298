"""Pytest configuration helpers for asset_browser tests."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:  # pragma: no cover - dependency availability varies between environments
    from PySide6.QtWidgets import QApplication
except ImportError:  # pragma: no cover - used when Qt is unavailable
    QApplication = None  # type: ignore[assignment]

# Ensure the source directory is importable without requiring an editable install.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


CUBE_OBJ = """\
v 0 0 0
v 2 0 0
v 2 1 0
v 0 1 0
v 0 0 4
v 2 0 4
v 2 1 4
v 0 1 4
f 1 3 2
f 1 4 3
f 5 6 7
f 5 7 8
f 1 2 6
f 1 6 5
f 4 8 7
f 4 7 3
f 1 5 8
f 1 8 4
f 2 3 7
f 2 7 6
"""


def _configure_from_clean_environment() -> None:
    from asset_browser.config import PORT_ENV_VAR, START_PATH_ENV_VAR, configure

    with pytest.MonkeyPatch.context() as patch:
        patch.delenv(START_PATH_ENV_VAR, raising=False)
        patch.delenv(PORT_ENV_VAR, raising=False)
        configure()


@pytest.fixture(autouse=True)
def reset_app_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure each test runs with the default application configuration."""

    from asset_browser.config import PORT_ENV_VAR, START_PATH_ENV_VAR

    monkeypatch.delenv(START_PATH_ENV_VAR, raising=False)
    monkeypatch.delenv(PORT_ENV_VAR, raising=False)
    _configure_from_clean_environment()
    yield
    # Runs before monkeypatch undoes the test's environment changes.
    _configure_from_clean_environment()



@pytest.fixture()
def box_obj_path(tmp_path: Path) -> Path:
    """A 2 x 1 x 4 box written as a Wavefront OBJ file."""

    path = tmp_path / "models" / "crate.obj"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CUBE_OBJ, encoding="utf-8")
    return path


@pytest.fixture(scope="session")
def qapp():
    """Provide a ``QApplication`` instance for UI-oriented tests."""

    if QApplication is None:
        pytest.skip("PySide6 is unavailable in this environment")

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app
