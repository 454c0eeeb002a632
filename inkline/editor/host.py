"""Single-consumer message loop between the editor and the language server."""
from __future__ import annotations

import logging
from collections import deque
from typing import Any, Iterable

from PySide6.QtCore import QObject, Signal

from inkline.core.errors import ClientNotInitialized, MalformedEdit, SessionResourceNotFound, SyncError
from inkline.core.events import (
    ClearCompletions,
    Command,
    CommandDispatcher,
    DidChange,
    DidClose,
    DidOpen,
    RequestCompletion,
    ShowCompletions,
)
from inkline.editor.controller import CompletionResult, EditorController
from inkline.lang.lsp_manager import LSPManager

logger = logging.getLogger(__name__)


class EditorHost(QObject):
    """Feeds messages to the controller one at a time and runs the resulting commands.

    Messages posted while one is being handled (for example a response that
    arrives synchronously) are queued and handled afterwards, so controller
    state is never mutated by two messages at once.
    """

    completions_changed = Signal(list)
    diagnostics_changed = Signal(str, list)
    resynced = Signal(str)

    def __init__(self, controller: EditorController, lsp: LSPManager | None = None, parent=None) -> None:
        super().__init__(parent)
        self.controller = controller
        self.lsp = lsp
        self._queue: deque[Any] = deque()
        self._draining = False
        self.dispatcher = CommandDispatcher()
        self.dispatcher.register(DidOpen, self._did_open)
        self.dispatcher.register(DidChange, self._did_change)
        self.dispatcher.register(DidClose, self._did_close)
        self.dispatcher.register(RequestCompletion, self._request_completion)
        self.dispatcher.register(ShowCompletions, self._show_completions)
        self.dispatcher.register(ClearCompletions, self._clear_completions)
        if lsp is not None:
            lsp.diagnostics.subscribe(self._on_diagnostics)

    # Message loop
    def post(self, message: Any) -> None:
        self._queue.append(message)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self._process(self._queue.popleft())
        finally:
            self._draining = False

    def _process(self, message: Any) -> None:
        try:
            commands = self.controller.update(message)
        except MalformedEdit as exc:
            logger.warning("Rejected edit: %s", exc)
            return
        except SessionResourceNotFound as exc:
            logger.info("Dropping %s: %s", type(message).__name__, exc)
            return
        self.run(commands)

    def run(self, commands: Iterable[Command]) -> None:
        resynced: set[str] = set()
        for command in commands:
            if isinstance(command, DidChange) and command.uri in resynced:
                continue
            try:
                self.dispatcher.execute(command)
            except ClientNotInitialized:
                logger.debug("No language server session; skipped %s", type(command).__name__)
            except SyncError as exc:
                logger.warning("%s", exc)
                resynced.add(exc.uri)
                self._resync()

    def _resync(self) -> None:
        for command in self.controller.resync():
            try:
                self.dispatcher.execute(command)
            except ClientNotInitialized:
                logger.debug("No language server session; resync of %s deferred", self.controller.uri)
                return
        self.resynced.emit(self.controller.uri)

    # Command handlers
    def _require_lsp(self) -> LSPManager:
        if self.lsp is None:
            raise ClientNotInitialized("editor is running without a language server")
        return self.lsp

    def _did_open(self, command: DidOpen) -> None:
        self._require_lsp().open_document(command.uri, command.language_id, command.version, command.text)

    def _did_change(self, command: DidChange) -> None:
        self._require_lsp().change_document(command.uri, command.version, command.changes)

    def _did_close(self, command: DidClose) -> None:
        self._require_lsp().close_document(command.uri)

    def _request_completion(self, command: RequestCompletion) -> None:
        def _deliver(message: dict) -> None:
            if "error" in message:
                logger.info("Completion request failed: %s", message["error"].get("message", ""))
                self.post(CompletionResult(command, None))
                return
            self.post(CompletionResult(command, message.get("result")))

        self._require_lsp().request_completions(
            command.uri, command.position, callback=_deliver, trigger_character=command.trigger_character
        )

    def _show_completions(self, command: ShowCompletions) -> None:
        self.completions_changed.emit([str(item["label"]) for item in command.items])

    def _clear_completions(self, command: ClearCompletions) -> None:
        self.completions_changed.emit([])

    def _on_diagnostics(self, uri: str, diagnostics: list) -> None:
        self.diagnostics_changed.emit(uri, diagnostics)
