"""Document text and protocol position arithmetic.

The text is kept as an immutable sequence of lines; every edit produces a new
:class:`Text`.  Protocol positions are always derived from the current lines,
never from a cached offset, because any edit invalidates earlier offsets.
"""
from __future__ import annotations

from typing import Iterable

from lsprotocol.types import Position, PositionEncodingKind

from inkline.core.edits import Edit, MergeLine, RemoveText
from inkline.core.errors import MalformedEdit
from inkline.core.location import Location, TextSpan, advance


def code_units(text: str, encoding: PositionEncodingKind) -> int:
    """Length of ``text`` in the code units of ``encoding``."""

    if encoding == PositionEncodingKind.Utf8:
        return len(text.encode("utf-8", errors="surrogatepass"))
    if encoding == PositionEncodingKind.Utf16:
        return len(text.encode("utf-16-le", errors="surrogatepass")) // 2
    return len(text)


class Text:
    """Immutable line sequence with ``"\\n"`` as the internal line terminator."""

    __slots__ = ("_lines",)

    def __init__(self, content: str = "") -> None:
        self._lines: tuple[str, ...] = tuple(content.replace("\r\n", "\n").split("\n"))

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "Text":
        text = cls.__new__(cls)
        text._lines = tuple(lines) or ("",)
        return text

    # Inspection ---------------------------------------------------------
    @property
    def lines(self) -> tuple[str, ...]:
        return self._lines

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line(self, row: int) -> str:
        """Return the text of ``row``; ``line_count`` is the empty trailing row."""

        if row == len(self._lines):
            return ""
        if not 0 <= row < len(self._lines):
            raise IndexError(f"row {row} outside document of {len(self._lines)} lines")
        return self._lines[row]

    @property
    def end(self) -> Location:
        return Location(len(self._lines) - 1, len(self._lines[-1]))

    def contains(self, location: Location) -> bool:
        """True if ``location`` addresses an existing character boundary."""

        if not 0 <= location.row < len(self._lines):
            return False
        return 0 <= location.col <= len(self._lines[location.row])

    def slice(self, start: Location, end: Location) -> str:
        if start.row == end.row:
            return self._lines[start.row][start.col : end.col]
        parts = [self._lines[start.row][start.col :]]
        parts.extend(self._lines[start.row + 1 : end.row])
        parts.append(self._lines[end.row][: end.col])
        return "\n".join(parts)

    def to_bytes(self) -> bytes:
        return str(self).encode("utf-8", errors="surrogatepass")

    def __str__(self) -> str:
        return "\n".join(self._lines)

    def __repr__(self) -> str:
        return f"Text({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Text):
            return NotImplemented
        return self._lines == other._lines

    def __hash__(self) -> int:
        return hash(self._lines)

    # Protocol positions -------------------------------------------------
    def to_protocol_position(self, row: int, col: int, encoding: PositionEncodingKind) -> Position:
        line = self.line(row)
        if not 0 <= col <= len(line):
            raise MalformedEdit(f"column {col} outside row {row} of length {len(line)}")
        if encoding == PositionEncodingKind.Utf32:
            return Position(line=row, character=col)
        return Position(line=row, character=code_units(line[:col], encoding))

    def from_protocol_position(self, position: Position, encoding: PositionEncodingKind) -> Location:
        """Inverse of :meth:`to_protocol_position`.

        Columns inside a multi-unit character round down to its start and
        columns past the end of the row clamp to the row end.
        """

        row = min(position.line, len(self._lines))
        line = self.line(row)
        if encoding == PositionEncodingKind.Utf32:
            return Location(row, min(position.character, len(line)))
        units = 0
        for col, char in enumerate(line):
            units += code_units(char, encoding)
            if units > position.character:
                return Location(row, col)
        return Location(row, len(line))

    # Parser coordinates -------------------------------------------------
    def byte_offset(self, location: Location) -> int:
        if location.row >= len(self._lines):
            return len(self.to_bytes())
        offset = sum(len(line.encode("utf-8", errors="surrogatepass")) + 1 for line in self._lines[: location.row])
        return offset + code_units(self._lines[location.row][: location.col], PositionEncodingKind.Utf8)

    def point(self, location: Location) -> tuple[int, int]:
        """Return ``(row, byte column)`` as used by the syntax tree."""

        line = self.line(location.row)
        return location.row, code_units(line[: location.col], PositionEncodingKind.Utf8)

    def location_from_point(self, point: tuple[int, int]) -> Location:
        row, byte_col = point
        line = self.line(min(row, len(self._lines)))
        prefix = line.encode("utf-8", errors="surrogatepass")[:byte_col]
        return Location(row, len(prefix.decode("utf-8", errors="ignore")))

    # Editing ------------------------------------------------------------
    def check(self, edit: Edit) -> None:
        """Raise :class:`MalformedEdit` unless ``edit`` can be applied to this text."""

        before = edit.before
        if not self.contains(before):
            raise MalformedEdit(f"{edit.kind} at {before} is outside the document")
        if edit.inserts:
            if not edit.text:
                raise MalformedEdit(f"{edit.kind} at {before} inserts nothing")
            if edit.kind == "insert_char" and (len(edit.text) != 1 or edit.text in "\r\n"):
                raise MalformedEdit(f"insert_char expects one non-newline character, got {edit.text!r}")
            return
        start = edit.after
        if not self.contains(start) or start > before:
            raise MalformedEdit(f"{edit.kind} from {start} to {before} is not a valid range")
        removed = self.slice(start, before)
        if removed != edit.text.replace("\r\n", "\n"):
            raise MalformedEdit(f"{edit.kind} expected {edit.text!r} before {before}, found {removed!r}")

    def apply(self, edit: Edit) -> tuple["Text", TextSpan]:
        """Apply a checked edit and return the new text and the touched span."""

        if edit.inserts:
            start = edit.before
            new_end = advance(start, edit.text)
            return self._replace(start, start, edit.text), TextSpan(start, start, new_end)
        start, end = edit.after, edit.before
        return self._replace(start, end, ""), TextSpan(start, end, start)

    def merge_line(self, row: int) -> MergeLine:
        """Edit joining ``row`` onto the end of the previous row."""

        if not 0 < row < len(self._lines):
            raise MalformedEdit(f"cannot merge row {row}")
        return MergeLine(before=Location(row, 0), after=Location(row - 1, len(self._lines[row - 1])))

    def removal(self, start: Location, end: Location) -> RemoveText:
        """Edit removing the text between ``start`` and ``end``."""

        if not (self.contains(start) and self.contains(end)) or start > end:
            raise MalformedEdit(f"cannot remove from {start} to {end}")
        return RemoveText(text=self.slice(start, end), before=end, after=start)

    def _replace(self, start: Location, end: Location, insert: str) -> "Text":
        head = self._lines[start.row][: start.col]
        tail = self._lines[end.row][end.col :]
        middle = (head + insert.replace("\r\n", "\n") + tail).split("\n")
        return Text.from_lines(self._lines[: start.row] + tuple(middle) + self._lines[end.row + 1 :])
