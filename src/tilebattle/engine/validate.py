"""Move validation — line, gap, connectivity, and dictionary rules.

Validation is read-only: the board is never touched here.
"""

from __future__ import annotations

from dataclasses import dataclass

from tilebattle.engine.board import Board
from tilebattle.engine.words import extract_words


class IllegalMove(Exception):
    """A game-rule rejection. Always recoverable; state is left as it was."""

    def __init__(self, reason: str, word: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.word = word


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating this turn's placements."""

    legal: bool
    reason: str | None = None
    word: str | None = None  # offending word, when a word caused the rejection
    words: tuple[str, ...] = ()

    def raise_if_illegal(self) -> None:
        if not self.legal:
            raise IllegalMove(self.reason or "Illegal move.", self.word)


def validate_move(board: Board, placements, dictionary) -> ValidationResult:
    """Check this turn's placements against the board and ``dictionary``.

    ``board`` must already carry the placements as pending tiles.
    ``dictionary`` is anything supporting ``in`` on upper-case words.
    """
    placements = list(placements)
    if not placements:
        return ValidationResult(legal=False, reason="No tiles placed.")

    rows = {p.row for p in placements}
    cols = {p.col for p in placements}
    same_row = len(rows) == 1
    same_col = len(cols) == 1
    if not same_row and not same_col:
        return ValidationResult(
            legal=False, reason="Tiles must be placed in a single row or column."
        )

    if len(placements) > 1:
        if same_row:
            row = next(iter(rows))
            span = [(row, c) for c in range(min(cols), max(cols) + 1)]
        else:
            col = next(iter(cols))
            span = [(r, col) for r in range(min(rows), max(rows) + 1)]
        if any(board.letter_at(r, c) is None for r, c in span):
            return ValidationResult(
                legal=False, reason="There is a gap between the placed tiles."
            )

    if board.has_confirmed():
        if not any(board.touches_confirmed(p.row, p.col) for p in placements):
            return ValidationResult(
                legal=False, reason="Tiles must touch a tile already on the board."
            )

    formed = extract_words(board, placements)
    if not formed:
        return ValidationResult(legal=False, reason="No word was formed.")

    words = tuple(w.text.upper() for w in formed)
    for word in words:
        if word not in dictionary:
            return ValidationResult(
                legal=False,
                reason=f"invalid_word: '{word}' is not in the dictionary.",
                word=word,
                words=words,
            )

    return ValidationResult(legal=True, words=words)
