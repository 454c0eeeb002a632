"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
from typing import Any

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication, QObject, Signal  # noqa: E402

from inkline.core.config import ConfigManager  # noqa: E402


@pytest.fixture(scope="session")
def qt_app():
    """Provide a shared QCoreApplication for signal-based tests."""

    return QCoreApplication.instance() or QCoreApplication([])


class FakeLSPClient(QObject):
    """Records traffic instead of talking to a server process."""

    response_received = Signal(dict)
    notification_received = Signal(dict)
    request_received = Signal(dict)
    exited = Signal(int)

    def __init__(self, command: list[str], workdir: str | None = None) -> None:
        super().__init__()
        self.command = command
        self.workdir = workdir
        self.running = False
        self.requests: list[tuple[int, str, Any]] = []
        self.notifications: list[tuple[str, Any]] = []
        self.responses: list[tuple[Any, Any]] = []
        self._id = 0

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def send_request(self, method: str, params: Any = None) -> int:
        self._id += 1
        self.requests.append((self._id, method, params))
        return self._id

    def send_notification(self, method: str, params: Any = None) -> None:
        self.notifications.append((method, params))

    def send_response(self, request_id: Any, result: Any = None) -> None:
        self.responses.append((request_id, result))

    def last_request(self, method: str) -> tuple[int, Any]:
        for request_id, name, params in reversed(self.requests):
            if name == method:
                return request_id, params
        raise AssertionError(f"no {method} request sent")

    def methods(self) -> list[str]:
        return [method for method, _ in self.notifications]


@pytest.fixture
def config(tmp_path) -> ConfigManager:
    return ConfigManager(user_settings_path=tmp_path / "settings.yaml")


@pytest.fixture
def fake_clients() -> list[FakeLSPClient]:
    return []


@pytest.fixture
def client_factory(fake_clients):
    def _factory(command, workdir=None):
        client = FakeLSPClient(command, workdir)
        fake_clients.append(client)
        return client

    return _factory


SERVER_CAPABILITIES = {
    "positionEncoding": "utf-16",
    "textDocumentSync": {"openClose": True, "change": 2},
    "completionProvider": {"triggerCharacters": ["."]},
    "documentSymbolProvider": True,
}


@pytest.fixture
def ready_manager(qt_app, config, tmp_path, client_factory, fake_clients):
    """An LSPManager whose handshake has completed against a fake client."""

    from inkline.lang.lsp_manager import LSPManager

    manager = LSPManager(config, workspace=str(tmp_path), client_factory=client_factory)
    manager.start("javascript")
    client = fake_clients[0]
    request_id, _ = client.last_request("initialize")
    client.response_received.emit({"jsonrpc": "2.0", "id": request_id, "result": {"capabilities": SERVER_CAPABILITIES}})
    assert manager.is_ready
    return manager
