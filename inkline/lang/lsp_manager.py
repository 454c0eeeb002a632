"""Protocol session with one language server."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable
from urllib.parse import quote

from lsprotocol import converters
from lsprotocol.types import Position
from PySide6.QtCore import QObject, Signal

from inkline.core.config import ConfigManager
from inkline.core.errors import ClientNotInitialized, SyncError
from inkline.lang.capabilities import SessionCapabilities, client_capabilities
from inkline.lang.diagnostics import DiagnosticsStore
from inkline.lang.lsp_client import LSPClient
from inkline.lang.translator import ChangeEvent

logger = logging.getLogger(__name__)

_converter = converters.get_converter()


def uri_for_path(path: Any) -> str:
    normalized = os.path.abspath(os.fspath(path))
    return "file://" + quote(normalized, safe="/")


class LSPManager(QObject):
    """Handshake, document notifications and requests for a single server.

    Nothing is sent before the ``initialize`` response has fixed the session
    capabilities; calls made earlier raise :class:`ClientNotInitialized`.
    """

    ready = Signal(object)
    lsp_error = Signal(str)
    lsp_notice = Signal(str)

    def __init__(
        self,
        config: ConfigManager,
        workspace: str | None = None,
        client_factory: Callable[..., LSPClient] = LSPClient,
        diagnostics: DiagnosticsStore | None = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.config = config
        self.workspace = workspace or os.getcwd()
        self.client: LSPClient | None = None
        self.capabilities: SessionCapabilities | None = None
        self.diagnostics = diagnostics or DiagnosticsStore()
        self._client_factory = client_factory
        self._pending: dict[int, Callable[[dict], None]] = {}
        self._sent_versions: dict[str, int] = {}
        self._language_map = self._build_language_map()
        self._shutting_down = False

    # Configuration
    def _build_language_map(self) -> dict[str, str]:
        mapping: dict[str, str] = {".js": "javascript", ".mjs": "javascript", ".cjs": "javascript"}
        overrides = self.config.get("lsp", {}).get("extension_map", {})
        mapping.update({f".{k.lstrip('.')}": v for k, v in overrides.items()})
        return mapping

    def language_for(self, path: Any) -> str | None:
        _, ext = os.path.splitext(os.fspath(path))
        return self._language_map.get(ext.lower())

    def _server_command(self, language: str) -> list[str] | None:
        entry = self.config.get("lsp", {}).get("servers", {}).get(language) or {}
        if not entry.get("command") or entry.get("enabled", True) is False:
            return None
        return [str(entry["command"])] + [str(arg) for arg in entry.get("args", [])]

    def _extra_trigger_characters(self) -> list[str]:
        intellisense = self.config.get("intellisense", {}) or {}
        return [str(char) for char in intellisense.get("trigger_characters", []) or []]

    # Lifecycle
    @property
    def is_ready(self) -> bool:
        return self.client is not None and self.capabilities is not None and not self._shutting_down

    def start(self, language: str) -> LSPClient | None:
        command = self._server_command(language)
        if not command:
            message = f"No language server configured for {language}"
            logger.warning(message)
            self.lsp_error.emit(message)
            return None
        client = self._client_factory(command, workdir=self.workspace)
        client.response_received.connect(self._handle_response)
        client.notification_received.connect(self._handle_notification)
        client.request_received.connect(self._handle_request)
        client.exited.connect(self._handle_exit)
        self.client = client
        client.start()
        self._initialize(client)
        return client

    def _initialize(self, client: LSPClient) -> None:
        root = Path(self.workspace).resolve()
        encodings = self.config.get("lsp", {}).get("position_encodings") or ["utf-8", "utf-16", "utf-32"]
        request_id = client.send_request(
            "initialize",
            {
                "processId": os.getpid(),
                "rootUri": root.as_uri(),
                "capabilities": client_capabilities(encodings),
                "workspaceFolders": [{"uri": root.as_uri(), "name": root.name}],
            },
        )

        def _handle_initialize(message: dict) -> None:
            if "error" in message:
                detail = message["error"].get("message", "initialize failed")
                logger.error("Language server rejected initialize: %s", detail)
                self.lsp_error.emit(detail)
                return
            result = message.get("result") or {}
            self.capabilities = SessionCapabilities.from_server(
                result.get("capabilities"), extra_triggers=self._extra_trigger_characters()
            )
            logger.info("Language server ready; position encoding %s", self.capabilities.encoding.value)
            client.send_notification("initialized", {})
            self.ready.emit(self.capabilities)

        self._pending[request_id] = _handle_initialize

    def shutdown(self) -> None:
        self._shutting_down = True
        client, self.client = self.client, None
        self._pending.clear()
        if client is not None:
            try:
                client.exited.disconnect(self._handle_exit)
            except (RuntimeError, TypeError):
                pass
            client.stop()

    def _handle_exit(self, code: int) -> None:
        if self._shutting_down:
            return
        logger.error("Language server exited unexpectedly with code %s", code)
        self.client = None
        self.capabilities = None
        self._pending.clear()
        self.lsp_error.emit(f"Language server stopped (exit code {code})")

    def _require_client(self) -> LSPClient:
        client = self.client
        if client is None or self.capabilities is None or self._shutting_down:
            raise ClientNotInitialized("language server handshake has not completed")
        return client

    # Document events
    def open_document(self, uri: str, language_id: str, version: int, text: str) -> None:
        client = self._require_client()
        client.send_notification(
            "textDocument/didOpen",
            {"textDocument": {"uri": uri, "languageId": language_id, "version": version, "text": text}},
        )
        self._sent_versions[uri] = version

    def change_document(self, uri: str, version: int, changes: Iterable[ChangeEvent]) -> None:
        client = self._require_client()
        last = self._sent_versions.get(uri)
        if last is not None and version <= last:
            raise SyncError(uri, version, last)
        client.send_notification(
            "textDocument/didChange",
            {
                "textDocument": {"uri": uri, "version": version},
                "contentChanges": [change.to_json() for change in changes],
            },
        )
        self._sent_versions[uri] = version

    def close_document(self, uri: str) -> None:
        client = self._require_client()
        client.send_notification("textDocument/didClose", {"textDocument": {"uri": uri}})
        self._sent_versions.pop(uri, None)
        self.diagnostics.reset(uri)

    # Feature requests
    def request_completions(
        self,
        uri: str,
        position: Position,
        callback: Callable[[dict], None] | None = None,
        trigger_character: str | None = None,
    ) -> int:
        client = self._require_client()
        context: dict[str, Any] = {"triggerKind": 1}
        if trigger_character:
            context = {"triggerKind": 2, "triggerCharacter": trigger_character}
        request_id = client.send_request(
            "textDocument/completion",
            {
                "textDocument": {"uri": uri},
                "position": _converter.unstructure(position, Position),
                "context": context,
            },
        )
        if callback:
            self._pending[request_id] = callback
        return request_id

    def request_document_symbols(self, uri: str, callback: Callable[[dict], None] | None = None) -> int:
        client = self._require_client()
        request_id = client.send_request("textDocument/documentSymbol", {"textDocument": {"uri": uri}})
        if callback:
            self._pending[request_id] = callback
        return request_id

    # Incoming traffic
    def _handle_response(self, message: dict[str, Any]) -> None:
        callback = self._pending.pop(message.get("id"), None)
        if callback is None:
            logger.debug("Dropping response to unknown request %s", message.get("id"))
            return
        callback(message)

    def _handle_notification(self, message: dict[str, Any]) -> None:
        method = message.get("method")
        params = message.get("params") or {}
        if method == "textDocument/publishDiagnostics":
            self.diagnostics.handle_publish(params)
        elif method == "window/logMessage":
            logger.info("Language server: %s", params.get("message", ""))
        elif method == "window/showMessage":
            text = str(params.get("message", ""))
            logger.info("Language server message: %s", text)
            self.lsp_notice.emit(text)
        else:
            logger.debug("Ignoring notification %s", method)

    def _handle_request(self, message: dict[str, Any]) -> None:
        if self.client is None:
            return
        method = message.get("method")
        params = message.get("params") or {}
        result: Any = None
        if method == "workspace/configuration":
            result = [None for _ in params.get("items", [])]
        elif method not in {"client/registerCapability", "client/unregisterCapability", "window/workDoneProgress/create"}:
            logger.debug("Answering unsupported server request %s with null", method)
        self.client.send_response(message["id"], result)
