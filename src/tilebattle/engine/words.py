"""Word extraction — every maximal run that touches this turn's tiles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tilebattle.engine.board import Board, TileSource


class Axis(str, Enum):
    ACROSS = "across"
    DOWN = "down"

    @property
    def step(self) -> tuple[int, int]:
        """(d_row, d_col) for one cell along this axis."""
        return (0, 1) if self is Axis.ACROSS else (1, 0)


@dataclass(frozen=True)
class Placement:
    """A tile put on the board this turn, reversible until commit.

    ``rack_index`` is the rack slot the tile came from, or -1 for tiles
    that do not come from the rack (free/wildcard tiles).
    """

    row: int
    col: int
    letter: str
    rack_index: int = -1
    source: TileSource = TileSource.NORMAL

    @property
    def pos(self) -> tuple[int, int]:
        return (self.row, self.col)

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "col": self.col,
            "letter": self.letter,
            "rack_index": self.rack_index,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> Placement:
        return cls(
            row=int(raw["row"]),
            col=int(raw["col"]),
            letter=raw["letter"],
            rack_index=int(raw.get("rack_index", -1)),
            source=TileSource(raw.get("source", "normal")),
        )


@dataclass(frozen=True)
class FormedWord:
    text: str
    cells: tuple[tuple[int, int], ...]
    axis: Axis

    @property
    def start(self) -> tuple[int, int]:
        return self.cells[0]


def _trace(board: Board, row: int, col: int, axis: Axis) -> FormedWord | None:
    """Run through (row, col) along ``axis``, or None if shorter than 2."""
    dr, dc = axis.step
    r, c = row, col
    while board.letter_at(r - dr, c - dc) is not None:
        r, c = r - dr, c - dc

    cells: list[tuple[int, int]] = []
    letters: list[str] = []
    while (letter := board.letter_at(r, c)) is not None:
        letters.append(letter)
        cells.append((r, c))
        r, c = r + dr, c + dc

    if len(letters) < 2:
        return None
    return FormedWord(text="".join(letters), cells=tuple(cells), axis=axis)


def extract_words(board: Board, placements) -> list[FormedWord]:
    """All distinct words formed by ``placements`` on a board with pending tiles.

    Order is deterministic: placement order, across before down.
    """
    words: list[FormedWord] = []
    seen: set[tuple[Axis, tuple[int, int], str]] = set()

    for p in placements:
        for axis in (Axis.ACROSS, Axis.DOWN):
            word = _trace(board, p.row, p.col, axis)
            if word is None:
                continue
            key = (axis, word.start, word.text)
            if key in seen:
                continue
            seen.add(key)
            words.append(word)

    return words
