"""Side-effect commands produced by the editor and the dispatcher that runs them."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from lsprotocol.types import Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DidOpen:
    uri: str
    language_id: str
    version: int
    text: str


@dataclass(frozen=True)
class DidChange:
    uri: str
    version: int
    changes: tuple[Any, ...]


@dataclass(frozen=True)
class DidClose:
    uri: str


@dataclass(frozen=True)
class RequestCompletion:
    """Ask the server for completions at ``position`` for the tracked session."""

    uri: str
    position: Position
    prefix: str
    version: int
    trigger_character: str | None = None


@dataclass(frozen=True)
class ShowCompletions:
    items: tuple[dict[str, Any], ...]


@dataclass(frozen=True)
class ClearCompletions:
    pass


Command = Union[DidOpen, DidChange, DidClose, RequestCompletion, ShowCompletions, ClearCompletions]


@dataclass
class CommandDispatcher:
    """Routes each command to the handler registered for its type."""

    _handlers: dict[type, Callable[[Any], None]] = field(default_factory=dict)

    def register(self, command_type: type, handler: Callable[[Any], None]) -> None:
        self._handlers[command_type] = handler

    def execute(self, command: Command) -> None:
        handler = self._handlers.get(type(command))
        if handler is None:
            logger.warning("No handler registered for %s", type(command).__name__)
            return
        handler(command)
