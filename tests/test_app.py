from __future__ import annotations

from pathlib import Path

import pytest

from asset_browser import app as app_module
from asset_browser.config import get_config


def test_main_configures_and_serves(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[tuple[object, dict[str, object]]] = []
    monkeypatch.setattr(app_module.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    exit_code = app_module.main(["--port", "4010", "--start-path", str(tmp_path), "--log-level", "DEBUG"])

    assert exit_code == 0
    (served, options) = calls[0]
    assert served.title == "Asset Browser"
    assert options == {"host": "127.0.0.1", "port": 4010, "log_level": "debug"}
    assert get_config().start_path == tmp_path


def test_parser_rejects_unknown_log_level() -> None:
    with pytest.raises(SystemExit):
        app_module.build_parser().parse_args(["--log-level", "LOUD"])
