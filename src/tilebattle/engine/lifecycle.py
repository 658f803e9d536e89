"""Turn lifecycle — pending placements, commit, pass, and undo.

Each function takes a ``GameState`` and returns a new one. Game-rule
violations raise ``IllegalMove`` and leave the input state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from tilebattle.cards.catalogue import ALL_CATEGORY
from tilebattle.cards.deck import draw_special
from tilebattle.engine.bag import ALPHABET, draw_tiles
from tilebattle.engine.board import TileSource
from tilebattle.engine.scoring import ScoreBreakdown, round_half_up
from tilebattle.engine.state import GameState, PlayerState
from tilebattle.engine.validate import IllegalMove
from tilebattle.engine.words import Placement


@dataclass(frozen=True)
class MoveResult:
    """A validated, scored move ready to be committed.

    ``breakdown.total`` already includes special-card adjustments.
    ``next_turn_multiplier`` is the multiplier granted for the mover's
    following turn (1.0 when no effect granted one).
    """

    words: tuple[str, ...]
    breakdown: ScoreBreakdown
    next_turn_multiplier: float = 1.0


# ----------------------------------------------------------------------
# Pending placements
# ----------------------------------------------------------------------

def place_tile(
    state: GameState,
    row: int,
    col: int,
    *,
    rack_index: int | None = None,
    letter: str | None = None,
    source: TileSource = TileSource.NORMAL,
) -> GameState:
    """Put a rack tile (by ``rack_index``) or a free tile (by ``letter``) on the board."""
    if state.finished:
        raise IllegalMove("The match is over.")
    if not state.board.in_bounds(row, col):
        raise IllegalMove(f"({row},{col}) is off the board.")
    if not state.board.cell(row, col).is_empty:
        raise IllegalMove(f"({row},{col}) is already occupied.")

    player = state.player
    if source is TileSource.NORMAL:
        if rack_index is None or not 0 <= rack_index < len(player.rack):
            raise IllegalMove("Pick a tile from your rack.")
        if any(p.rack_index == rack_index for p in state.placed):
            raise IllegalMove("That rack tile is already on the board.")
        placement = Placement(row, col, player.rack[rack_index], rack_index, source)
    elif source is TileSource.FREE:
        letter = (letter or "").upper()
        if len(letter) != 1 or letter not in ALPHABET:
            raise IllegalMove("Free tiles must be a single letter A-Z.")
        if player.free_uses(letter) >= state.free_uses_per_letter:
            raise IllegalMove(f"Free '{letter}' is used up for this match.")
        placement = Placement(row, col, letter, -1, source)
        pool = dict(player.free_pool)
        pool[letter] = pool.get(letter, 0) + 1
        player = replace(player, free_pool=pool)
    else:
        raise IllegalMove(f"Tiles from '{source.value}' cannot be placed directly.")

    board = state.board.copy()
    board.set_pending(row, col, placement.letter)
    return replace(
        state, board=board, player=player, placed=state.placed + (placement,)
    )


def remove_tile(state: GameState, row: int, col: int) -> GameState:
    """Take back one tile placed this turn."""
    placement = next((p for p in state.placed if p.pos == (row, col)), None)
    if placement is None:
        raise IllegalMove(f"No tile was placed at ({row},{col}) this turn.")
    board = state.board.copy()
    board.clear_pending(row, col)
    player = _refund_free(state.player, [placement])
    placed = tuple(p for p in state.placed if p is not placement)
    return replace(state, board=board, player=player, placed=placed)


def set_card(state: GameState, instance_id: str) -> GameState:
    """Arm a special card from hand for this turn."""
    player = state.player
    if state.placed:
        raise IllegalMove("Set a special card before placing tiles.")
    if player.special_set is not None:
        raise IllegalMove("A special card is already set.")
    card = next((c for c in player.special_hand if c.instance_id == instance_id), None)
    if card is None:
        raise IllegalMove("That card is not in your hand.")
    if (
        player.last_special_category is not None
        and player.last_special_category in card.categories
        and ALL_CATEGORY not in card.categories
    ):
        raise IllegalMove(
            f"A '{player.last_special_category}' card was used last turn."
        )
    return state.with_player(replace(player, special_set=card))


def unset_card(state: GameState) -> GameState:
    return state.with_player(replace(state.player, special_set=None))


def use_spell_check(state: GameState) -> GameState:
    """Spend one spell-check lookup from this turn's allowance."""
    player = state.player
    if player.spell_checks_remaining <= 0:
        raise IllegalMove("No spell checks left this turn.")
    return state.with_player(
        replace(player, spell_checks_remaining=player.spell_checks_remaining - 1)
    )


# ----------------------------------------------------------------------
# Commit / pass / undo
# ----------------------------------------------------------------------

def commit_move(state: GameState, result: MoveResult) -> GameState:
    """Confirm pending tiles, bank the score, refill, and advance the turn."""
    assert state.placed, "commit_move called without placements"

    board = state.board.copy()
    for p in state.placed:
        board.confirm(p.row, p.col, p.source)

    player = state.player
    used = {p.rack_index for p in state.placed if p.rack_index >= 0}
    rack = tuple(t for i, t in enumerate(player.rack) if i not in used)
    drawn, bag = draw_tiles(state.bag, state.rack_size - len(rack))

    turn_score = result.breakdown.total
    if player.next_turn_multiplier != 1:
        turn_score = round_half_up(turn_score * player.next_turn_multiplier)

    hand, deck = draw_special(
        player.special_hand, player.special_deck, 1, state.hand_size
    )
    last_category = (
        player.special_set.definition.primary_category
        if player.special_set is not None else None
    )
    player = replace(
        player,
        rack=rack + drawn,
        score=player.score + turn_score,
        special_hand=hand,
        special_deck=deck,
        special_set=None,
        last_special_category=last_category,
        next_turn_multiplier=result.next_turn_multiplier,
        spell_checks_remaining=state.spell_checks_per_turn,
        word_history=player.word_history + tuple(result.words),
    )

    turn = state.turn + 1
    return replace(
        state,
        board=board,
        bag=bag,
        player=player,
        placed=(),
        turn=turn,
        finished=turn >= state.turn_limit,
        last_words=result.breakdown.words,
        last_turn_score=turn_score,
    )


def apply_pass(state: GameState) -> GameState:
    """End the turn without scoring. Pending tiles go back, free uses are refunded."""
    board = state.board.copy()
    for p in state.placed:
        board.clear_pending(p.row, p.col)

    player = _refund_free(state.player, state.placed)
    hand, deck = draw_special(
        player.special_hand, player.special_deck, 1, state.hand_size
    )
    player = replace(
        player,
        special_hand=hand,
        special_deck=deck,
        special_set=None,
        last_special_category=None,
        next_turn_multiplier=1.0,
        letter_limit=None,
        spell_checks_remaining=state.spell_checks_per_turn,
    )

    turn = state.turn + 1
    return replace(
        state,
        board=board,
        player=player,
        placed=(),
        turn=turn,
        finished=turn >= state.turn_limit,
        last_words=(),
        last_turn_score=0,
    )


def undo(state: GameState) -> GameState:
    """Clear this turn's pending tiles. The turn does not advance."""
    board = state.board.copy()
    for p in state.placed:
        board.clear_pending(p.row, p.col)
    player = _refund_free(state.player, state.placed)
    return replace(state, board=board, player=player, placed=())


def _refund_free(player: PlayerState, placements) -> PlayerState:
    refunds = [p.letter for p in placements if p.source is TileSource.FREE]
    if not refunds:
        return player
    pool = dict(player.free_pool)
    for letter in refunds:
        pool[letter] = max(0, pool.get(letter, 0) - 1)
    return replace(player, free_pool=pool)
