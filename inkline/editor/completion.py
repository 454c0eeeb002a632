"""When to ask the language server for completions, and what to show."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from lsprotocol.types import Position

logger = logging.getLogger(__name__)


class CompletionStage(Enum):
    IDLE = "idle"
    EDITED = "edited"
    MOVED = "moved"
    SUPPRESSED = "suppressed"
    PENDING = "pending"


@dataclass(frozen=True)
class CompletionSession:
    """One in-flight request: where it was asked and for which prefix."""

    uri: str
    position: Position
    prefix: str
    triggered: bool
    version: int


@dataclass(frozen=True)
class TriggerDecision:
    stage: CompletionStage
    prefix: str = ""
    trigger_character: str | None = None

    @property
    def pending(self) -> bool:
        return self.stage is CompletionStage.PENDING


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def word_before(line: str, col: int) -> str:
    """Contiguous alphanumeric/underscore run ending at ``col``."""

    start = col
    while start > 0 and _is_word_char(line[start - 1]):
        start -= 1
    return line[start:col]


class CompletionTrigger:
    """Decides from the line and cursor column whether a request is warranted."""

    def __init__(self, trigger_characters: Iterable[str] = (), min_prefix_length: int = 2) -> None:
        self.trigger_characters = frozenset(trigger_characters)
        self.min_prefix_length = max(1, int(min_prefix_length))

    def evaluate(self, line: str, col: int) -> TriggerDecision:
        if col <= 0 or col > len(line):
            return TriggerDecision(CompletionStage.SUPPRESSED)
        previous = line[col - 1]
        prefix = word_before(line, col)
        if previous in self.trigger_characters:
            return TriggerDecision(CompletionStage.PENDING, prefix, previous)
        if _is_word_char(previous) and len(prefix) >= self.min_prefix_length:
            return TriggerDecision(CompletionStage.PENDING, prefix)
        return TriggerDecision(CompletionStage.SUPPRESSED, prefix)


def completion_items(result: Any) -> list[Mapping[str, Any]]:
    """Items of a completion result, which is either a list or a ``CompletionList``."""

    if isinstance(result, Mapping):
        result = result.get("items")
    if not isinstance(result, list):
        return []
    return [item for item in result if isinstance(item, Mapping) and item.get("label") is not None]


def filter_candidates(items: Iterable[Mapping[str, Any]], prefix: str) -> list[Mapping[str, Any]]:
    """Keep items whose filter text starts with ``prefix``, ordered by sort text."""

    kept = [item for item in items if str(item.get("filterText") or item["label"]).startswith(prefix)]
    kept.sort(key=lambda item: str(item.get("sortText") or item["label"]))
    return kept


class CompletionTracker:
    """Holds the newest request; responses for any other request are dropped."""

    def __init__(self) -> None:
        self.session: CompletionSession | None = None

    def begin(self, session: CompletionSession) -> None:
        self.session = session

    def clear(self) -> None:
        self.session = None

    def accept(self, session: CompletionSession, result: Any) -> list[Mapping[str, Any]] | None:
        """Filtered candidates for ``session``, or ``None`` if it was superseded."""

        if session != self.session:
            logger.debug("Dropping stale completion response for %r", session.prefix)
            return None
        self.session = None
        return filter_candidates(completion_items(result), session.prefix)


@dataclass
class CompletionMenuState:
    """Displayed candidates with a wrap-around selection."""

    items: list[Mapping[str, Any]] = field(default_factory=list)
    selected_index: int | None = None

    def set_items(self, items: Iterable[Mapping[str, Any]]) -> None:
        self.items = list(items)
        self.selected_index = 0 if self.items else None

    def clear(self) -> None:
        self.set_items([])

    def is_empty(self) -> bool:
        return not self.items

    def labels(self) -> list[str]:
        return [str(item["label"]) for item in self.items]

    def next(self) -> None:
        if self.selected_index is None:
            return
        self.selected_index = (self.selected_index + 1) % len(self.items)

    def previous(self) -> None:
        if self.selected_index is None:
            return
        self.selected_index = (self.selected_index - 1) % len(self.items)

    @property
    def selected(self) -> Mapping[str, Any] | None:
        if self.selected_index is None:
            return None
        return self.items[self.selected_index]
