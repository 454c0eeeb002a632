"""Atomic local edits produced by the input layer.

Every edit records the cursor location before it was applied and the
location the cursor ends up at.  ``text`` is the inserted text for the
insertions and the removed text for the removals.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from inkline.core.location import Location, advance


@dataclass(frozen=True)
class InsertChar:
    char: str
    before: Location

    kind: ClassVar[str] = "insert_char"
    inserts: ClassVar[bool] = True

    @property
    def text(self) -> str:
        return self.char

    @property
    def after(self) -> Location:
        return Location(self.before.row, self.before.col + 1)


@dataclass(frozen=True)
class DeleteChar:
    """Backspace: removes ``char``, the character preceding ``before``."""

    char: str
    before: Location

    kind: ClassVar[str] = "delete_char"
    inserts: ClassVar[bool] = False

    @property
    def text(self) -> str:
        return self.char

    @property
    def after(self) -> Location:
        return Location(self.before.row, self.before.col - 1)


@dataclass(frozen=True)
class SplitLine:
    before: Location

    kind: ClassVar[str] = "split_line"
    inserts: ClassVar[bool] = True

    @property
    def text(self) -> str:
        return "\n"

    @property
    def after(self) -> Location:
        return Location(self.before.row + 1, 0)


@dataclass(frozen=True)
class MergeLine:
    """Removes the line break in front of row ``before.row``.

    ``after`` is the end of the previous row, where the cursor lands.
    """

    before: Location
    after: Location

    kind: ClassVar[str] = "merge_line"
    inserts: ClassVar[bool] = False

    @property
    def text(self) -> str:
        return "\n"


@dataclass(frozen=True)
class InsertText:
    text: str
    before: Location

    kind: ClassVar[str] = "insert_text"
    inserts: ClassVar[bool] = True

    @property
    def after(self) -> Location:
        return advance(self.before, self.text)


@dataclass(frozen=True)
class RemoveText:
    """Removes ``text`` which ends at ``before`` and starts at ``after``."""

    text: str
    before: Location
    after: Location

    kind: ClassVar[str] = "remove_text"
    inserts: ClassVar[bool] = False


Edit = Union[InsertChar, DeleteChar, SplitLine, MergeLine, InsertText, RemoveText]
