from __future__ import annotations

import logging
from pathlib import Path

from lsprotocol.types import PositionEncodingKind

import inkline.core.config as config_mod
from inkline.core.events import ClearCompletions, CommandDispatcher, DidClose
from inkline.core.logging import level_from_name
from inkline.lang.capabilities import SessionCapabilities, client_capabilities, negotiated_encoding
from inkline.lang.diagnostics import Diagnostic, DiagnosticsStore


def test_config_manager_uses_user_settings(monkeypatch, tmp_path: Path) -> None:
    # Redirect config paths to an isolated temp directory
    config_root = tmp_path / "config"
    monkeypatch.setattr(config_mod, "CONFIG_DIR", config_root)
    monkeypatch.setattr(config_mod, "USER_SETTINGS_PATH", config_root / "settings.yaml")

    config_root.mkdir()
    config_mod.USER_SETTINGS_PATH.write_text("logging:\n  level: debug\n", encoding="utf-8")

    manager = config_mod.ConfigManager()
    assert manager.user_settings_path == config_root / "settings.yaml"
    assert manager.lookup("logging.level") == "debug"
    assert manager.lookup("intellisense.min_chars") == 2


def test_user_settings_are_merged_over_defaults(tmp_path: Path) -> None:
    settings = tmp_path / "settings.yaml"
    settings.write_text("intellisense:\n  min_chars: 3\n", encoding="utf-8")

    manager = config_mod.ConfigManager(user_settings_path=settings)
    assert manager.lookup("intellisense.min_chars") == 3
    assert manager.lookup("intellisense.trigger_characters") == ["."]
    assert manager.lookup("lsp.servers.javascript.command") == "typescript-language-server"
    assert manager.lookup("lsp.servers.cobol.command", "none") == "none"


def test_level_names_map_to_logging_levels() -> None:
    assert level_from_name("debug") == logging.DEBUG
    assert level_from_name(logging.WARNING) == logging.WARNING
    assert level_from_name("not-a-level") == logging.INFO
    assert level_from_name(None) == logging.INFO


def test_dispatcher_routes_by_command_type(caplog) -> None:
    dispatcher = CommandDispatcher()
    closed: list[str] = []
    dispatcher.register(DidClose, lambda command: closed.append(command.uri))

    with caplog.at_level(logging.WARNING):
        for command in (DidClose("file:///a.js"), ClearCompletions()):
            dispatcher.execute(command)

    assert closed == ["file:///a.js"]
    assert "No handler registered for ClearCompletions" in caplog.text


def test_position_encoding_negotiation() -> None:
    assert negotiated_encoding(None) == PositionEncodingKind.Utf16
    assert negotiated_encoding("utf-8") == PositionEncodingKind.Utf8
    assert negotiated_encoding("utf-32") == PositionEncodingKind.Utf32
    assert negotiated_encoding("latin-1") == PositionEncodingKind.Utf16


def test_capabilities_default_without_server_data() -> None:
    capabilities = SessionCapabilities.from_server(None, extra_triggers=["."])
    assert capabilities.encoding == PositionEncodingKind.Utf16
    assert capabilities.trigger_characters == frozenset({"."})
    assert not capabilities.incremental_sync
    assert not capabilities.document_symbols


def test_client_capabilities_offer_known_encodings_only() -> None:
    offered = client_capabilities(["utf-32", "ebcdic", "utf-8"])
    assert offered["general"]["positionEncodings"] == ["utf-32", "utf-8"]
    assert client_capabilities(["ebcdic"])["general"]["positionEncodings"] == ["utf-8", "utf-16", "utf-32"]


def test_diagnostics_store_notifies_and_resets() -> None:
    store = DiagnosticsStore()
    updates: list[tuple[str, int]] = []
    store.subscribe(lambda uri, items: updates.append((uri, len(items))))

    store.handle_publish(
        {"uri": "file:///a.js", "diagnostics": [{"range": {"start": {"line": 2, "character": 4}}, "message": "x"}]}
    )
    assert store.get("file:///a.js") == [Diagnostic("file:///a.js", 2, 4, "Information", "x")]
    store.reset("file:///a.js")
    assert store.get("file:///a.js") == []
    assert updates == [("file:///a.js", 1), ("file:///a.js", 0)]
