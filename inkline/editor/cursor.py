"""Cursor model and keystroke planning.

A keystroke becomes a short list of edits applied in order.  The cursor may
rest on the row after the last line; typing there first emits a
:class:`SplitLine` at the end of the document so the row exists.
"""
from __future__ import annotations

from dataclasses import dataclass

from inkline.core.edits import DeleteChar, Edit, InsertChar, InsertText, SplitLine
from inkline.core.location import Location
from inkline.core.text import Text


@dataclass
class Cursor:
    row: int = 0
    col: int = 0

    @property
    def location(self) -> Location:
        return Location(self.row, self.col)

    def move_to(self, location: Location) -> None:
        self.row, self.col = location.row, location.col

    def clamp(self, text: Text) -> None:
        self.row = max(0, min(self.row, text.line_count))
        self.col = max(0, min(self.col, len(text.line(self.row))))

    def move(self, text: Text, direction: str) -> bool:
        """Move one step; returns ``True`` if the cursor changed position."""

        start = (self.row, self.col)
        if direction == "left":
            if self.col > 0:
                self.col -= 1
            elif self.row > 0:
                self.row -= 1
                self.col = len(text.line(self.row))
        elif direction == "right":
            if self.col < len(text.line(self.row)):
                self.col += 1
            elif self.row < text.line_count - 1:
                self.row, self.col = self.row + 1, 0
        elif direction == "up":
            self.row = max(0, self.row - 1)
        elif direction == "down":
            self.row = min(text.line_count, self.row + 1)
        elif direction == "home":
            self.col = 0
        elif direction == "end":
            self.col = len(text.line(self.row))
        else:
            raise ValueError(f"unknown cursor direction: {direction}")
        self.clamp(text)
        return (self.row, self.col) != start


def pre_insert_edits(text: Text, cursor: Location) -> list[Edit]:
    if cursor.row == text.line_count:
        return [SplitLine(before=text.end)]
    return []


def plan_type(text: Text, cursor: Location, char: str) -> list[Edit]:
    if char in ("\n", "\r"):
        return plan_newline(text, cursor)
    return pre_insert_edits(text, cursor) + [InsertChar(char=char, before=cursor)]


def plan_newline(text: Text, cursor: Location) -> list[Edit]:
    return pre_insert_edits(text, cursor) + [SplitLine(before=cursor)]


def plan_paste(text: Text, cursor: Location, content: str) -> list[Edit]:
    if not content:
        return []
    return pre_insert_edits(text, cursor) + [InsertText(text=content, before=cursor)]


def plan_backspace(text: Text, cursor: Location) -> list[Edit]:
    # Nothing precedes the cursor on the trailing row; callers move it to the end instead.
    if cursor.row >= text.line_count:
        return []
    if cursor.col > 0:
        return [DeleteChar(char=text.line(cursor.row)[cursor.col - 1], before=cursor)]
    if cursor.row > 0:
        return [text.merge_line(cursor.row)]
    return []


def plan_delete_range(text: Text, start: Location, end: Location) -> list[Edit]:
    start, end = min(start, end), max(start, end)
    if start == end:
        return []
    return [text.removal(start, end)]
