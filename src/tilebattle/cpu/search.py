"""CPU move search — brute force over dictionary × start cell × axis.

For every dictionary word that the rack plus the board's letters could
spell, every start cell on both axes is tried. Fits must reuse matching
confirmed letters, consume at least one rack tile, and connect to the
board once it has tiles. Every word the fit forms must be in the
dictionary. One of the top-scoring candidates is returned at random, so
the CPU is strong without being predictable.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from concurrent.futures import Executor, Future
from dataclasses import dataclass

from tilebattle.engine.board import Board, TileSource
from tilebattle.engine.scoring import WordScore, score_move
from tilebattle.engine.words import Axis, Placement, extract_words

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5


@dataclass(frozen=True)
class Candidate:
    placements: tuple[Placement, ...]
    score: int
    words: tuple[WordScore, ...]

    @property
    def tile_count(self) -> int:
        return len(self.placements)


class _BudgetExhausted(Exception):
    pass


def _could_spell(word: str, available: Counter) -> bool:
    """Cheap multiset check: rack plus board letters cover ``word``."""
    need = Counter(word)
    return all(available[ch] >= n for ch, n in need.items())


def _try_fit(
    board: Board,
    rack: tuple[str, ...],
    word: str,
    row: int,
    col: int,
    axis: Axis,
    board_has_tiles: bool,
) -> list[Placement] | None:
    """Lay ``word`` from (row, col) along ``axis``, or None if it cannot fit."""
    dr, dc = axis.step
    free_slots: dict[str, list[int]] = {}
    for i, letter in enumerate(rack):
        free_slots.setdefault(letter, []).append(i)

    placements: list[Placement] = []
    reuses = False
    for i, ch in enumerate(word):
        r, c = row + dr * i, col + dc * i
        existing = board.confirmed_at(r, c)
        if existing == ch:
            reuses = True
            continue
        if existing is not None:
            return None
        slots = free_slots.get(ch)
        if not slots:
            return None
        placements.append(Placement(r, c, ch, slots.pop(0), TileSource.NORMAL))

    if not placements:
        return None
    if board_has_tiles and not reuses:
        if not any(board.touches_confirmed(p.row, p.col) for p in placements):
            return None
    return placements


def _evaluate(board: Board, placements: list[Placement], dictionary) -> Candidate | None:
    trial = board.copy()
    for p in placements:
        trial.set_pending(p.row, p.col, p.letter)
    formed = extract_words(trial, placements)
    if not formed:
        return None
    if any(w.text.upper() not in dictionary for w in formed):
        return None
    breakdown = score_move(trial, placements)
    return Candidate(
        placements=tuple(placements), score=breakdown.total, words=breakdown.words
    )


def generate_candidates(
    board: Board,
    rack,
    dictionary,
    node_budget: int | None = None,
) -> list[Candidate]:
    """Every legal move for ``rack`` on ``board``.

    ``node_budget`` caps the number of fits tried; running out raises
    ``_BudgetExhausted`` to the caller.
    """
    rack = tuple(rack)
    size = board.size
    board_has_tiles = board.has_confirmed()
    available = Counter(rack) + Counter(board.confirmed_letters())

    candidates: list[Candidate] = []
    nodes = 0
    for word in dictionary:
        word = word.upper()
        if len(word) > size or not _could_spell(word, available):
            continue
        for axis in (Axis.ACROSS, Axis.DOWN):
            dr, dc = axis.step
            for row in range(size - dr * (len(word) - 1)):
                for col in range(size - dc * (len(word) - 1)):
                    nodes += 1
                    if node_budget is not None and nodes > node_budget:
                        raise _BudgetExhausted()
                    placements = _try_fit(
                        board, rack, word, row, col, axis, board_has_tiles
                    )
                    if placements is None:
                        continue
                    if (cand := _evaluate(board, placements, dictionary)) is not None:
                        candidates.append(cand)

    logger.debug("CPU search tried %d fits, %d legal moves", nodes, len(candidates))
    return candidates


def find_best_move(
    board: Board,
    rack,
    dictionary,
    letter_limit: int | None = None,
    rng: random.Random | None = None,
    top_n: int = DEFAULT_TOP_N,
    node_budget: int | None = None,
) -> Candidate | None:
    """Pick a move for the CPU, or None when it should pass.

    With ``letter_limit`` set only moves using exactly that many tiles
    qualify; if none do, the CPU passes rather than break the limit.
    """
    rng = rng or random.Random()
    try:
        candidates = generate_candidates(board, rack, dictionary, node_budget)
    except _BudgetExhausted:
        logger.info("CPU search budget of %d fits exhausted, passing", node_budget)
        return None

    if letter_limit is not None:
        candidates = [c for c in candidates if c.tile_count == letter_limit]
    if not candidates:
        return None

    candidates.sort(key=lambda c: c.score, reverse=True)
    pool = candidates[: max(1, min(top_n, len(candidates)))]
    return pool[rng.randrange(len(pool))]


def run_cpu_search_async(executor: Executor, *args, **kwargs) -> Future:
    """Run ``find_best_move`` on ``executor``; the board is copied first."""
    board, *rest = args
    return executor.submit(find_best_move, board.copy(), *rest, **kwargs)
