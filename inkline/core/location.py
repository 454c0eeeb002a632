"""Character-unit locations inside a text buffer."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Location:
    """A (row, column) pair counted in characters, both zero based."""

    row: int
    col: int

    def __str__(self) -> str:
        return f"{self.row}:{self.col}"


@dataclass(frozen=True)
class TextSpan:
    """Region touched by an edit.

    ``start``/``old_end`` are locations in the text before the edit and
    ``start``/``new_end`` are locations in the text after it.
    """

    start: Location
    old_end: Location
    new_end: Location


def advance(location: Location, text: str) -> Location:
    """Return the location reached after writing ``text`` at ``location``."""

    text = text.replace("\r\n", "\n")
    breaks = text.count("\n")
    if not breaks:
        return Location(location.row, location.col + len(text))
    return Location(location.row + breaks, len(text) - text.rfind("\n") - 1)
