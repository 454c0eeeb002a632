"""Application bootstrap for Inkline."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from lsprotocol.types import SymbolInformation
from PySide6.QtCore import QCoreApplication, QTimer

from inkline.core.config import ConfigManager
from inkline.core.logging import configure_logging, get_logger, level_from_name
from inkline.editor.completion import CompletionTrigger
from inkline.editor.controller import EditorController
from inkline.editor.host import EditorHost
from inkline.lang.capabilities import SessionCapabilities
from inkline.lang.documents import DocumentManager
from inkline.lang.lsp_manager import LSPManager, uri_for_path


def format_symbol(symbol: SymbolInformation) -> str:
    start, end = symbol.location.range.start, symbol.location.range.end
    return f"{symbol.name}\t{symbol.kind.name}\t{start.line}:{start.character}-{end.line}:{end.character}"


def format_server_symbol(payload: dict) -> str:
    location = payload.get("location") or {}
    target = location.get("range") or payload.get("range") or {}
    start, end = target.get("start", {}), target.get("end", {})
    return (
        f"{payload.get('name', '?')}\t{payload.get('kind', '?')}\t"
        f"{start.get('line', 0)}:{start.get('character', 0)}-{end.get('line', 0)}:{end.get('character', 0)}"
    )


class InklineApplication:
    """Opens one file, synchronizes it with a language server and reports its symbols."""

    def __init__(self, argv: Sequence[str] | None = None) -> None:
        self.args = self._parse_args(argv)
        self.config = ConfigManager()
        configure_logging(level_from_name(self.config.lookup("logging.level")))
        self.logger = get_logger(__name__)
        self.qt_app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
        self.path = Path(self.args.path)
        self.uri = uri_for_path(self.path)
        self.lsp: LSPManager | None = None
        self.host: EditorHost | None = None
        self.controller: EditorController | None = None
        self._exit_code = 0

    def _parse_args(self, argv: Sequence[str] | None) -> argparse.Namespace:
        parser = argparse.ArgumentParser(prog="inkline", description="Language-server document synchronization")
        parser.add_argument("path", help="File to open")
        parser.add_argument("--server-language", help="Language whose configured server should be started")
        parser.add_argument("--offline", action="store_true", help="Do not start a language server")
        parser.add_argument("--symbols", action="store_true", help="Also ask the server for document symbols")
        parser.add_argument("--timeout-ms", type=int, default=15000, help="Give up waiting for the server after this long")
        return parser.parse_args(argv)

    def _language(self, lsp: LSPManager | None = None) -> str:
        if self.args.server_language:
            return self.args.server_language
        if lsp is not None:
            return lsp.language_for(self.path) or "javascript"
        return "javascript"

    def _language_id(self, language: str) -> str:
        return str(self.config.lookup(f"lsp.servers.{language}.language_id", language))

    def _build_controller(self, capabilities: SessionCapabilities, language: str) -> EditorController:
        trigger = CompletionTrigger(
            capabilities.trigger_characters,
            min_prefix_length=int(self.config.lookup("intellisense.min_chars", 2)),
        )
        return EditorController(
            DocumentManager(capabilities),
            self.uri,
            language_id=self._language_id(language),
            trigger=trigger,
            completion_enabled=bool(self.config.lookup("intellisense.enabled", True)),
        )

    def _print_local_symbols(self, controller: EditorController) -> None:
        for symbol in controller.documents.document_symbols(self.uri):
            print(format_symbol(symbol))

    def run(self) -> int:
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            self.logger.error("Cannot read %s: %s", self.path, exc)
            return 1
        if self.args.offline:
            return self._run_offline(content)
        return self._run_online(content)

    def _run_offline(self, content: str) -> int:
        self.controller = self._build_controller(SessionCapabilities(), self._language())
        self.controller.open(content)
        self._print_local_symbols(self.controller)
        self.controller.close()
        return 0

    def _run_online(self, content: str) -> int:
        self.lsp = LSPManager(self.config, workspace=str(self.path.resolve().parent))
        language = self._language(self.lsp)
        self.lsp.ready.connect(lambda capabilities: self._on_ready(capabilities, language, content))
        self.lsp.lsp_error.connect(self._on_error)
        if self.lsp.start(language) is None:
            return 1
        QTimer.singleShot(self.args.timeout_ms, self._on_timeout)
        try:
            self.qt_app.exec()
        finally:
            self.cleanup()
        return self._exit_code

    def _on_ready(self, capabilities: SessionCapabilities, language: str, content: str) -> None:
        self.controller = self._build_controller(capabilities, language)
        self.host = EditorHost(self.controller, self.lsp)
        self.host.run(self.controller.open(content))
        self._print_local_symbols(self.controller)
        if self.args.symbols and capabilities.document_symbols and self.lsp is not None:
            self.lsp.request_document_symbols(self.uri, callback=self._on_server_symbols)
            return
        self._finish(0)

    def _on_server_symbols(self, message: dict) -> None:
        for payload in message.get("result") or []:
            print(format_server_symbol(payload))
        self._finish(0)

    def _on_error(self, message: str) -> None:
        self.logger.error("%s", message)
        self._finish(1)

    def _on_timeout(self) -> None:
        self.logger.error("Timed out waiting for the language server")
        self._finish(2)

    def _finish(self, code: int) -> None:
        self._exit_code = code
        if self.host is not None and self.controller is not None and self.uri in self.controller.documents.store:
            self.host.run(self.controller.close())
        self.qt_app.exit(code)

    def cleanup(self) -> None:
        if self.lsp is not None:
            self.lsp.shutdown()
            self.lsp = None
