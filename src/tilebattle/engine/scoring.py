"""Scoring — provenance base points with premiums on new tiles only."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from tilebattle.engine.board import Board, Multiplier, tile_points
from tilebattle.engine.words import FormedWord, Placement, extract_words

_LETTER_FACTOR = {Multiplier.DL: 2, Multiplier.TL: 3}
_WORD_FACTOR = {Multiplier.DW: 2, Multiplier.TW: 3}


@dataclass(frozen=True)
class WordScore:
    word: str
    points: int

    def to_dict(self) -> dict:
        return {"word": self.word, "points": self.points}


@dataclass(frozen=True)
class ScoreBreakdown:
    total: int
    words: tuple[WordScore, ...] = field(default_factory=tuple)

    def with_total(self, total: int) -> ScoreBreakdown:
        return ScoreBreakdown(total=total, words=self.words)


def score_word(
    board: Board,
    word: FormedWord,
    placed: dict[tuple[int, int], Placement],
    letter_upgrades: frozenset[tuple[int, int]] = frozenset(),
) -> int:
    """Points for one formed word.

    ``placed`` maps this turn's positions to their placement. Letter and
    word premiums count only on those positions; tiles confirmed on
    earlier turns score their banked base value. ``letter_upgrades`` are
    new positions that score as double letter regardless of the square.
    """
    letters = 0
    word_mult = 1
    for pos in word.cells:
        cell = board.cell(*pos)
        placement = placed.get(pos)
        if placement is None:
            letters += tile_points(cell.source)
            continue
        value = tile_points(placement.source)
        if pos in letter_upgrades and cell.multiplier is Multiplier.NONE:
            value *= 2
        else:
            value *= _LETTER_FACTOR.get(cell.multiplier, 1)
        letters += value
        word_mult *= _WORD_FACTOR.get(cell.multiplier, 1)
    return letters * word_mult


def score_move(
    board: Board,
    placements,
    letter_upgrades: frozenset[tuple[int, int]] = frozenset(),
) -> ScoreBreakdown:
    """Score every word formed by ``placements`` (pending on ``board``)."""
    placed = {p.pos: p for p in placements}
    breakdown: list[WordScore] = []
    for word in extract_words(board, placements):
        breakdown.append(
            WordScore(word.text, score_word(board, word, placed, letter_upgrades))
        )
    return ScoreBreakdown(
        total=sum(w.points for w in breakdown), words=tuple(breakdown)
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))
