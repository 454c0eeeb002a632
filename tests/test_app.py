from __future__ import annotations

import inkline.core.config as config_mod
import inkline.core.logging as logging_mod
from inkline.main import main


def test_offline_run_prints_local_symbols(qt_app, monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setattr(config_mod, "USER_SETTINGS_PATH", tmp_path / "config" / "settings.yaml")
    monkeypatch.setattr(logging_mod, "LOG_DIR", tmp_path / "logs")
    source = tmp_path / "example.js"
    source.write_text("let i = 0;\nfunction f(){}\n", encoding="utf-8")

    assert main([str(source), "--offline"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines == ["i\tVariable\t0:0-0:10", "f\tFunction\t1:0-1:14"]


def test_missing_file_fails(qt_app, monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config_mod, "USER_SETTINGS_PATH", tmp_path / "config" / "settings.yaml")
    monkeypatch.setattr(logging_mod, "LOG_DIR", tmp_path / "logs")
    assert main([str(tmp_path / "absent.js"), "--offline"]) == 1
