from __future__ import annotations

import pytest
from lsprotocol.types import Position, PositionEncodingKind

from inkline.core.edits import DeleteChar, InsertChar, SplitLine
from inkline.core.errors import DocumentAlreadyOpen, MalformedEdit, ResourceKind, SessionResourceNotFound
from inkline.core.location import Location
from inkline.core.text import Text
from inkline.lang.capabilities import SessionCapabilities
from inkline.lang.documents import DocumentManager

URI = "file:///tmp/example.js"


@pytest.fixture
def manager() -> DocumentManager:
    manager = DocumentManager(SessionCapabilities())
    manager.open_document(URI, "ab")
    return manager


def test_versions_increase_by_one_per_edit(manager: DocumentManager) -> None:
    versions = [
        manager.apply_edit(URI, InsertChar("c", Location(0, 2))).version,
        manager.apply_edit(URI, SplitLine(Location(0, 3))).version,
        manager.apply_edit(URI, InsertChar("d", Location(1, 0))).version,
    ]
    assert versions == [1, 2, 3]
    assert manager.text(URI) == Text("abc\nd")


def test_malformed_edit_leaves_document_untouched(manager: DocumentManager) -> None:
    with pytest.raises(MalformedEdit):
        manager.apply_edit(URI, DeleteChar("z", Location(0, 1)))
    with pytest.raises(MalformedEdit):
        manager.apply_edit(URI, InsertChar("x", Location(4, 0)))
    assert manager.version(URI) == 0
    assert manager.text(URI) == Text("ab")


def test_change_carries_one_event_in_negotiated_encoding() -> None:
    manager = DocumentManager(SessionCapabilities(encoding=PositionEncodingKind.Utf8))
    manager.open_document(URI, "é")
    change = manager.apply_edit(URI, InsertChar("x", Location(0, 1)))
    (event,) = change.events
    assert event.range.start == Position(line=0, character=2)
    assert change.text == Text("éx")


def test_full_sync_sends_whole_document() -> None:
    manager = DocumentManager(SessionCapabilities(incremental_sync=False))
    manager.open_document(URI, "a\nb")
    (event,) = manager.apply_edit(URI, InsertChar("c", Location(1, 1))).events
    assert event.range is None
    assert event.text == "a\r\nbc"


def test_reopen_requires_close(manager: DocumentManager) -> None:
    with pytest.raises(DocumentAlreadyOpen):
        manager.open_document(URI, "other")
    assert manager.close_document(URI) == Text("ab")
    snapshot = manager.open_document(URI, "other")
    assert snapshot.version == 0


def test_edits_after_close_report_missing_document(manager: DocumentManager) -> None:
    manager.close_document(URI)
    with pytest.raises(SessionResourceNotFound) as excinfo:
        manager.apply_edit(URI, InsertChar("c", Location(0, 2)))
    assert excinfo.value.kind is ResourceKind.DOCUMENT


def test_resync_uses_fresh_version(manager: DocumentManager) -> None:
    manager.apply_edit(URI, InsertChar("c", Location(0, 2)))
    snapshot = manager.resync(URI)
    assert snapshot.version == 2
    assert snapshot.text == Text("abc")
    assert manager.apply_edit(URI, InsertChar("d", Location(0, 3))).version == 3


def test_reparse_replaces_text_and_tree(manager: DocumentManager) -> None:
    manager.reparse(URI, "let z = 1;")
    assert manager.text(URI) == Text("let z = 1;")
    assert [symbol.name for symbol in manager.document_symbols(URI)] == ["z"]
