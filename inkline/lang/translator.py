"""Translate local edits into ``textDocument/didChange`` content changes.

Start positions and removal ranges come from the text before the edit;
insertion end positions come from the text after it, at the same column as
the start, so an insertion is always an empty range at the insertion point.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from lsprotocol import converters
from lsprotocol.types import Position, PositionEncodingKind, Range

from inkline.core.edits import DeleteChar, Edit, InsertChar, InsertText, MergeLine, RemoveText, SplitLine
from inkline.core.text import Text, code_units

CANONICAL_LINE_TERMINATOR = "\r\n"

_converter = converters.get_converter()


@dataclass(frozen=True)
class ChangeEvent:
    """One content change; ``range`` is ``None`` for a full-document replacement."""

    text: str
    range: Range | None = None

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": self.text}
        if self.range is not None:
            payload["range"] = _converter.unstructure(self.range, Range)
        return payload


def _insert_char(edit: InsertChar, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    row, col = edit.before.row, edit.before.col
    start = before.to_protocol_position(row, col, encoding)
    end = after.to_protocol_position(row, col, encoding)
    return ChangeEvent(edit.char, Range(start=start, end=end))


def _delete_char(edit: DeleteChar, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    start = before.to_protocol_position(edit.after.row, edit.after.col, encoding)
    end = Position(line=start.line, character=start.character + code_units(edit.char, encoding))
    return ChangeEvent("", Range(start=start, end=end))


def _split_line(edit: SplitLine, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    start = before.to_protocol_position(edit.before.row, edit.before.col, encoding)
    return ChangeEvent(CANONICAL_LINE_TERMINATOR, Range(start=start, end=start))


def _merge_line(edit: MergeLine, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    start = before.to_protocol_position(edit.after.row, edit.after.col, encoding)
    end = Position(line=edit.before.row, character=0)
    return ChangeEvent("", Range(start=start, end=end))


def _insert_text(edit: InsertText, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    row, col = edit.before.row, edit.before.col
    start = before.to_protocol_position(row, col, encoding)
    end = after.to_protocol_position(row, col, encoding)
    return ChangeEvent(edit.text, Range(start=start, end=end))


def _remove_text(edit: RemoveText, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    start = before.to_protocol_position(edit.after.row, edit.after.col, encoding)
    end = before.to_protocol_position(edit.before.row, edit.before.col, encoding)
    return ChangeEvent("", Range(start=start, end=end))


_TRANSLATORS: dict[type, Callable[..., ChangeEvent]] = {
    InsertChar: _insert_char,
    DeleteChar: _delete_char,
    SplitLine: _split_line,
    MergeLine: _merge_line,
    InsertText: _insert_text,
    RemoveText: _remove_text,
}


def translate(edit: Edit, before: Text, after: Text, encoding: PositionEncodingKind) -> ChangeEvent:
    """Map a checked edit to its incremental change.

    ``before`` and ``after`` are the document text on either side of the edit.
    """

    return _TRANSLATORS[type(edit)](edit, before, after, encoding)


def full_document_change(text: Text) -> ChangeEvent:
    """Change replacing the whole document, for servers without incremental sync."""

    return ChangeEvent(CANONICAL_LINE_TERMINATOR.join(text.lines))
