"""Board model — grid of cells with premium squares and tile provenance."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Multiplier(str, Enum):
    NONE = "NONE"
    DL = "DL"  # double letter
    TL = "TL"  # triple letter
    DW = "DW"  # double word
    TW = "TW"  # triple word


class TileSource(str, Enum):
    NORMAL = "normal"
    SPECIAL = "special"
    FREE = "free"


# Base points by provenance: rack tiles are worth the most, wildcards the least.
TILE_POINTS: dict[TileSource, int] = {
    TileSource.NORMAL: 3,
    TileSource.SPECIAL: 2,
    TileSource.FREE: 1,
}

ORTHOGONAL = ((-1, 0), (1, 0), (0, -1), (0, 1))


def tile_points(source: TileSource | None) -> int:
    """Base value of a tile. Unknown provenance counts as a rack tile."""
    return TILE_POINTS[source or TileSource.NORMAL]


# Premium square positions for the classic 15×15 board -----------------

_CLASSIC_SIZE = 15

_TW_POSITIONS = [
    (0, 0), (0, 7), (0, 14),
    (7, 0), (7, 14),
    (14, 0), (14, 7), (14, 14),
]

# Centre star (7, 7) is a double word square
_DW_POSITIONS = [
    (1, 1), (2, 2), (3, 3), (4, 4),
    (1, 13), (2, 12), (3, 11), (4, 10),
    (10, 4), (11, 3), (12, 2), (13, 1),
    (10, 10), (11, 11), (12, 12), (13, 13),
    (7, 7),
]

_TL_POSITIONS = [
    (1, 5), (1, 9),
    (5, 1), (5, 5), (5, 9), (5, 13),
    (9, 1), (9, 5), (9, 9), (9, 13),
    (13, 5), (13, 9),
]

_DL_POSITIONS = [
    (0, 3), (0, 11),
    (2, 6), (2, 8),
    (3, 0), (3, 7), (3, 14),
    (6, 2), (6, 6), (6, 8), (6, 12),
    (7, 3), (7, 11),
    (8, 2), (8, 6), (8, 8), (8, 12),
    (11, 0), (11, 7), (11, 14),
    (12, 6), (12, 8),
    (14, 3), (14, 11),
]


@dataclass(frozen=True)
class BoardLayout:
    """Board size plus the per-cell multiplier grid (row-major)."""

    size: int
    multipliers: tuple[tuple[Multiplier, ...], ...]

    def multiplier_at(self, row: int, col: int) -> Multiplier:
        if row < len(self.multipliers) and col < len(self.multipliers[row]):
            return self.multipliers[row][col]
        return Multiplier.NONE

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "multipliers": [[m.value for m in row] for row in self.multipliers],
        }

    @classmethod
    def from_dict(cls, raw: dict) -> BoardLayout:
        size = int(raw["size"])
        grid = raw.get("multipliers") or []
        rows = tuple(
            tuple(Multiplier(m) for m in row[:size]) for row in grid[:size]
        )
        return cls(size=size, multipliers=rows)


def standard_layout(size: int = _CLASSIC_SIZE) -> BoardLayout:
    """Classic premium-square layout, rescaled for boards other than 15×15."""
    scale = (size - 1) / (_CLASSIC_SIZE - 1)
    grid = [[Multiplier.NONE] * size for _ in range(size)]
    # Weakest first so stronger squares win when rescaling collides
    for kind, positions in (
        (Multiplier.DL, _DL_POSITIONS),
        (Multiplier.TL, _TL_POSITIONS),
        (Multiplier.DW, _DW_POSITIONS),
        (Multiplier.TW, _TW_POSITIONS),
    ):
        for r, c in positions:
            grid[round(r * scale)][round(c * scale)] = kind
    return BoardLayout(size=size, multipliers=tuple(tuple(row) for row in grid))


def load_layout(path: Path) -> BoardLayout:
    """Load a ``{"size": N, "multipliers": [[...]]}`` layout file."""
    with open(path) as f:
        return BoardLayout.from_dict(json.load(f))


@dataclass
class Cell:
    """One board square. Empty, pending, or confirmed — never both."""

    multiplier: Multiplier = Multiplier.NONE
    confirmed: str | None = None
    pending: str | None = None
    source: TileSource | None = None

    @property
    def letter(self) -> str | None:
        """Effective letter: a pending tile shadows the confirmed one."""
        return self.pending if self.pending is not None else self.confirmed

    @property
    def is_empty(self) -> bool:
        return self.confirmed is None and self.pending is None


class Board:
    """Square grid of cells. Addressed as (row, col)."""

    def __init__(self, cells: list[list[Cell]]) -> None:
        self._cells = cells

    @classmethod
    def empty(cls, layout: BoardLayout) -> Board:
        return cls([
            [Cell(multiplier=layout.multiplier_at(r, c)) for c in range(layout.size)]
            for r in range(layout.size)
        ])

    @property
    def size(self) -> int:
        return len(self._cells)

    def copy(self) -> Board:
        """Deep copy. Cells are never shared between copies."""
        return Board([
            [Cell(cell.multiplier, cell.confirmed, cell.pending, cell.source)
             for cell in row]
            for row in self._cells
        ])

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def cell(self, row: int, col: int) -> Cell:
        return self._cells[row][col]

    def letter_at(self, row: int, col: int) -> str | None:
        """Effective letter at (row, col), or None if empty / off-board."""
        if self.in_bounds(row, col):
            return self._cells[row][col].letter
        return None

    def confirmed_at(self, row: int, col: int) -> str | None:
        if self.in_bounds(row, col):
            return self._cells[row][col].confirmed
        return None

    def has_confirmed(self) -> bool:
        return any(cell.confirmed is not None for row in self._cells for cell in row)

    def confirmed_letters(self) -> list[str]:
        return [cell.confirmed for row in self._cells for cell in row
                if cell.confirmed is not None]

    def touches_confirmed(self, row: int, col: int) -> bool:
        """True if an orthogonal neighbour holds a confirmed tile."""
        return any(
            self.confirmed_at(row + dr, col + dc) is not None
            for dr, dc in ORTHOGONAL
        )

    # ------------------------------------------------------------------
    # Mutation (callers work on copies)
    # ------------------------------------------------------------------

    def set_pending(self, row: int, col: int, letter: str) -> None:
        cell = self._cells[row][col]
        assert cell.is_empty, f"cell ({row},{col}) is occupied"
        cell.pending = letter

    def clear_pending(self, row: int, col: int) -> None:
        self._cells[row][col].pending = None

    def confirm(self, row: int, col: int, source: TileSource) -> None:
        cell = self._cells[row][col]
        assert cell.pending is not None, f"no pending tile at ({row},{col})"
        cell.confirmed = cell.pending
        cell.pending = None
        cell.source = source

    # ------------------------------------------------------------------
    # Serialization / rendering
    # ------------------------------------------------------------------

    def to_dict(self) -> list[list[dict]]:
        return [
            [
                {
                    "multiplier": cell.multiplier.value,
                    "confirmed": cell.confirmed,
                    "pending": cell.pending,
                    "source": cell.source.value if cell.source else None,
                }
                for cell in row
            ]
            for row in self._cells
        ]

    @classmethod
    def from_dict(cls, rows: list[list[dict]]) -> Board:
        return cls([
            [
                Cell(
                    multiplier=Multiplier(raw.get("multiplier", "NONE")),
                    confirmed=raw.get("confirmed"),
                    pending=raw.get("pending"),
                    source=TileSource(raw["source"]) if raw.get("source") else None,
                )
                for raw in row
            ]
            for row in rows
        ])
