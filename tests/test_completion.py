from __future__ import annotations

import pytest
from lsprotocol.types import Position

from inkline.editor.completion import (
    CompletionMenuState,
    CompletionSession,
    CompletionStage,
    CompletionTracker,
    CompletionTrigger,
    completion_items,
    filter_candidates,
    word_before,
)


@pytest.fixture
def trigger() -> CompletionTrigger:
    return CompletionTrigger({"."})


def test_single_character_prefix_is_suppressed(trigger: CompletionTrigger) -> None:
    decision = trigger.evaluate("f", 1)
    assert decision.stage is CompletionStage.SUPPRESSED
    assert decision.prefix == "f"


def test_two_character_prefix_requests(trigger: CompletionTrigger) -> None:
    decision = trigger.evaluate("let fo", 6)
    assert decision.pending
    assert decision.prefix == "fo"
    assert decision.trigger_character is None


def test_trigger_character_requests_without_prefix(trigger: CompletionTrigger) -> None:
    decision = trigger.evaluate("a.", 2)
    assert decision.pending
    assert decision.prefix == ""
    assert decision.trigger_character == "."


@pytest.mark.parametrize("line, col", [("", 0), ("ab ", 3), ("ab(", 3), ("abc", 0)])
def test_non_word_characters_suppress(trigger: CompletionTrigger, line: str, col: int) -> None:
    assert not trigger.evaluate(line, col).pending


def test_prefix_only_counts_characters_before_cursor(trigger: CompletionTrigger) -> None:
    assert not trigger.evaluate("foo", 1).pending
    assert word_before("let foo_bar2", 12) == "foo_bar2"
    assert word_before("a.b", 3) == "b"


def test_minimum_prefix_length_is_configurable() -> None:
    assert CompletionTrigger(min_prefix_length=3).evaluate("fo", 2).stage is CompletionStage.SUPPRESSED
    assert CompletionTrigger(min_prefix_length=1).evaluate("f", 1).pending


def test_filter_keeps_prefix_matches_sorted_by_sort_text() -> None:
    items = [
        {"label": "forEach", "sortText": "2"},
        {"label": "for", "sortText": "1"},
        {"label": "map", "sortText": "0"},
        {"label": "fox", "filterText": "fox"},
        {"label": "Fold"},
    ]
    assert [item["label"] for item in filter_candidates(items, "fo")] == ["for", "forEach", "fox"]


def test_filter_text_takes_precedence_over_label() -> None:
    items = [{"label": "console", "filterText": "log"}, {"label": "local"}]
    assert [item["label"] for item in filter_candidates(items, "lo")] == ["console", "local"]


def test_result_shapes() -> None:
    items = [{"label": "a"}]
    assert completion_items(items) == items
    assert completion_items({"isIncomplete": False, "items": items}) == items
    assert completion_items(None) == []
    assert completion_items([{"kind": 3}]) == []


def session(prefix: str, version: int) -> CompletionSession:
    return CompletionSession("file:///a.js", Position(line=0, character=len(prefix)), prefix, False, version)


def test_stale_responses_are_dropped() -> None:
    tracker = CompletionTracker()
    first, second = session("fo", 1), session("foo", 2)
    tracker.begin(first)
    tracker.begin(second)
    items = [{"label": "foo"}, {"label": "fob"}]

    assert tracker.accept(first, items) is None
    assert [item["label"] for item in tracker.accept(second, items)] == ["foo"]
    # A response is consumed once.
    assert tracker.accept(second, items) is None


def test_cleared_tracker_accepts_nothing() -> None:
    tracker = CompletionTracker()
    tracker.begin(session("fo", 1))
    tracker.clear()
    assert tracker.accept(session("fo", 1), [{"label": "for"}]) is None


def test_menu_selection_wraps() -> None:
    menu = CompletionMenuState()
    menu.next()
    assert menu.selected is None

    menu.set_items([{"label": "a"}, {"label": "b"}, {"label": "c"}])
    assert menu.selected == {"label": "a"}
    menu.previous()
    assert menu.selected == {"label": "c"}
    menu.next()
    menu.next()
    assert menu.labels() == ["a", "b", "c"]
    assert menu.selected == {"label": "b"}

    menu.clear()
    assert menu.is_empty()
    assert menu.selected is None
