"""Editor state machine: keystrokes in, protocol side effects out."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from inkline.core.edits import Edit
from inkline.core.events import (
    ClearCompletions,
    Command,
    DidChange,
    DidClose,
    DidOpen,
    RequestCompletion,
    ShowCompletions,
)
from inkline.core.location import Location
from inkline.core.text import Text
from inkline.editor import cursor as planning
from inkline.editor.completion import (
    CompletionMenuState,
    CompletionStage,
    CompletionSession,
    CompletionTracker,
    CompletionTrigger,
)
from inkline.editor.cursor import Cursor
from inkline.lang.documents import DocumentManager

logger = logging.getLogger(__name__)

MOVEMENT_KEYS = frozenset({"left", "right", "up", "down", "home", "end"})


@dataclass(frozen=True)
class KeyPressed:
    key: str
    char: str = ""


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class CompletionResult:
    request: RequestCompletion
    result: Any


class EditorController:
    """Owns the cursor and completion state for one open document.

    Every method returns the commands the host has to carry out; the
    controller itself never talks to the language server.
    """

    def __init__(
        self,
        documents: DocumentManager,
        uri: str,
        language_id: str = "javascript",
        trigger: CompletionTrigger | None = None,
        completion_enabled: bool = True,
    ) -> None:
        self.documents = documents
        self.uri = uri
        self.language_id = language_id
        self.trigger = trigger or CompletionTrigger(documents.capabilities.trigger_characters)
        self.completion_enabled = completion_enabled
        self.cursor = Cursor()
        self.tracker = CompletionTracker()
        self.menu = CompletionMenuState()
        self.stage = CompletionStage.IDLE
        self.size = (0, 0)

    @property
    def text(self) -> Text:
        return self.documents.text(self.uri)

    # Lifecycle
    def open(self, content: str | Text = "") -> list[Command]:
        snapshot = self.documents.open_document(self.uri, content)
        self.cursor = Cursor()
        return [DidOpen(self.uri, self.language_id, snapshot.version, str(snapshot.text))]

    def close(self) -> list[Command]:
        self.documents.close_document(self.uri)
        self.tracker.clear()
        self.menu.clear()
        return [DidClose(self.uri)]

    def resync(self) -> list[Command]:
        """Close and reopen the document on the server under a fresh version."""

        snapshot = self.documents.resync(self.uri)
        logger.warning("Resynchronizing %s at version %s", self.uri, snapshot.version)
        return [
            DidClose(self.uri),
            DidOpen(self.uri, self.language_id, snapshot.version, str(snapshot.text)),
        ]

    # Editing
    def apply_local_edit(self, edit: Edit) -> list[Command]:
        commands = self._apply(edit)
        return commands + self._completion_commands(CompletionStage.EDITED)

    def apply_edits(self, edits: list[Edit]) -> list[Command]:
        """Apply a keystroke's edits, all or none.

        The whole plan is checked against a scratch copy of the text first, so
        a bad edit late in the plan cannot leave earlier ones committed but
        never announced to the server.
        """

        scratch = self.text
        for edit in edits:
            scratch.check(edit)
            scratch, _ = scratch.apply(edit)
        commands: list[Command] = []
        for edit in edits:
            commands.extend(self._apply(edit))
        return commands + self._completion_commands(CompletionStage.EDITED)

    def _apply(self, edit: Edit) -> list[Command]:
        change = self.documents.apply_edit(self.uri, edit)
        self.cursor.move_to(edit.after)
        return [DidChange(self.uri, change.version, change.events)]

    def handle_key(self, key: str, char: str = "") -> list[Command]:
        text = self.text
        here = self.cursor.location
        if key == "char":
            return self.apply_edits(planning.plan_type(text, here, char))
        if key == "enter":
            return self.apply_edits(planning.plan_newline(text, here))
        if key == "paste":
            return self.apply_edits(planning.plan_paste(text, here, char))
        if key == "backspace":
            if here.row >= text.line_count:
                return self._move_to(text.end)
            return self.apply_edits(planning.plan_backspace(text, here))
        if key in MOVEMENT_KEYS:
            return self.move_cursor(key)
        if key == "completion_next":
            self.menu.next()
            return []
        if key == "completion_previous":
            self.menu.previous()
            return []
        logger.debug("Ignoring key %r", key)
        return []

    def delete_range(self, start: Location, end: Location) -> list[Command]:
        edits = planning.plan_delete_range(self.text, start, end)
        return self.apply_edits(edits) if edits else []

    def move_cursor(self, direction: str) -> list[Command]:
        if not self.cursor.move(self.text, direction):
            return []
        return self._completion_commands(CompletionStage.MOVED)

    def _move_to(self, location: Location) -> list[Command]:
        if location == self.cursor.location:
            return []
        self.cursor.move_to(location)
        return self._completion_commands(CompletionStage.MOVED)

    def resize(self, width: int, height: int) -> list[Command]:
        self.size = (width, height)
        return []

    # Completion
    def _completion_commands(self, stage: CompletionStage) -> list[Command]:
        self.stage = stage
        if not self.completion_enabled:
            return []
        text = self.text
        row, col = self.cursor.row, self.cursor.col
        decision = self.trigger.evaluate(text.line(row), col)
        self.stage = decision.stage
        if not decision.pending:
            self.tracker.clear()
            had_items = not self.menu.is_empty()
            self.menu.clear()
            return [ClearCompletions()] if had_items else []
        request = RequestCompletion(
            uri=self.uri,
            position=text.to_protocol_position(row, col, self.documents.capabilities.encoding),
            prefix=decision.prefix,
            version=self.documents.version(self.uri),
            trigger_character=decision.trigger_character,
        )
        self.tracker.begin(session_for(request))
        return [request]

    def update(self, message: Any) -> list[Command]:
        if isinstance(message, KeyPressed):
            return self.handle_key(message.key, message.char)
        if isinstance(message, Resized):
            return self.resize(message.width, message.height)
        if isinstance(message, CompletionResult):
            if message.request.uri not in self.documents.store:
                logger.debug("Ignoring completions for closed document %s", message.request.uri)
                return []
            items = self.tracker.accept(session_for(message.request), message.result)
            if items is None:
                return []
            self.menu.set_items(items)
            return [ShowCompletions(tuple(items))]
        logger.debug("Ignoring message %r", message)
        return []


def session_for(request: RequestCompletion) -> CompletionSession:
    return CompletionSession(
        uri=request.uri,
        position=request.position,
        prefix=request.prefix,
        triggered=request.trigger_character is not None,
        version=request.version,
    )
