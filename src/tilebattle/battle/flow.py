"""Battle flow — pure transitions over a solo or two-sided match.

Only the active side is mounted into the shared ``GameState``; the other
side waits in ``MatchState.benched`` as a plain ``PlayerState``. After a
commit or pass the active side is unmounted and the next one mounted,
so every engine function keeps operating on a single ``player``.

A confirmed move runs through these phases in order:

    AWAITING_MOVE → VALIDATING → SCORING → COMMITTING → SWITCH_OR_END

and ends in AWAITING_MOVE (next side) or FINISHED. A rejection leaves
the state as it was, same side to move.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum

from tilebattle.cards.effects import resolve_special, tick_poison
from tilebattle.cpu.search import Candidate, find_best_move
from tilebattle.engine.bag import draw_tiles
from tilebattle.engine.board import Board, BoardLayout
from tilebattle.engine.lifecycle import (
    MoveResult,
    apply_pass,
    commit_move,
    place_tile,
    undo,
)
from tilebattle.engine.scoring import score_move
from tilebattle.engine.state import (
    BattleType,
    GameState,
    PlayerState,
    TurnRecord,
    new_player,
)
from tilebattle.engine.validate import IllegalMove, validate_move

logger = logging.getLogger(__name__)

CPU_SIDE = "cpu"


class GameMode(str, Enum):
    SOLO = "solo"
    BATTLE = "battle"  # human vs built-in CPU
    LOCAL_PVP = "local_pvp"
    ONLINE_PVP = "online_pvp"

    @property
    def two_sided(self) -> bool:
        return self is not GameMode.SOLO


class Phase(str, Enum):
    AWAITING_MOVE = "awaiting_move"
    VALIDATING = "validating"
    SCORING = "scoring"
    COMMITTING = "committing"
    SWITCH_OR_END = "switch_or_end"
    FINISHED = "finished"


@dataclass(frozen=True)
class MatchState:
    mode: GameMode
    game: GameState
    order: tuple[str, ...]
    active: str
    benched: dict[str, PlayerState] = field(default_factory=dict)
    battle_type: BattleType | None = None
    max_hp: int = 0
    phase: Phase = Phase.AWAITING_MOVE
    cpu_side: str | None = None

    @property
    def finished(self) -> bool:
        return self.phase is Phase.FINISHED

    def player(self, side: str) -> PlayerState:
        if side == self.active:
            return self.game.player
        return self.benched[side]

    def opponent_of(self, side: str) -> str | None:
        others = [s for s in self.order if s != side]
        return others[0] if others else None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "game": self.game.to_dict(),
            "order": list(self.order),
            "active": self.active,
            "benched": {k: v.to_dict() for k, v in self.benched.items()},
            "battle_type": self.battle_type.value if self.battle_type else None,
            "max_hp": self.max_hp,
            "phase": self.phase.value,
            "cpu_side": self.cpu_side,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> MatchState:
        bt = raw.get("battle_type")
        return cls(
            mode=GameMode(raw["mode"]),
            game=GameState.from_dict(raw["game"]),
            order=tuple(raw["order"]),
            active=raw["active"],
            benched={k: PlayerState.from_dict(v) for k, v in raw.get("benched", {}).items()},
            battle_type=BattleType(bt) if bt else None,
            max_hp=raw.get("max_hp", 0),
            phase=Phase(raw.get("phase", Phase.AWAITING_MOVE.value)),
            cpu_side=raw.get("cpu_side"),
        )


# ----------------------------------------------------------------------
# Setup
# ----------------------------------------------------------------------

def start_match(
    mode: GameMode,
    players,
    *,
    bag: tuple[str, ...],
    layout: BoardLayout,
    category: str,
    max_turns: int = 10,
    battle_type: BattleType | None = None,
    max_hp: int = 100,
    decks: dict | None = None,
    rack_size: int = 7,
    hand_size: int = 4,
    free_uses_per_letter: int = 2,
    spell_checks_per_turn: int = 3,
) -> MatchState:
    """Deal racks in seat order and mount the first side.

    ``bag`` and ``decks`` must already be shuffled. In ``BATTLE`` mode the
    second seat is the CPU, which never holds special cards.
    """
    players = tuple(players)
    assert len(players) == (2 if mode.two_sided else 1), f"bad seats {players}"
    decks = decks or {}
    if not mode.two_sided:
        battle_type = None
    elif battle_type is None:
        battle_type = BattleType.SCORE
    hp = max_hp if battle_type is BattleType.HP else 0
    cpu_side = players[1] if mode is GameMode.BATTLE else None

    sides: dict[str, PlayerState] = {}
    for name in players:
        rack, bag = draw_tiles(bag, rack_size)
        deck = () if name == cpu_side else decks.get(name, ())
        sides[name] = new_player(
            name, rack, deck, hp=hp, hand_size=hand_size, spell_checks=spell_checks_per_turn
        )

    first = players[0]
    game = GameState(
        board=Board.empty(layout),
        bag=bag,
        player=sides.pop(first),
        category=category,
        max_turns=max_turns,
        turn_limit=max_turns * len(players),
        rack_size=rack_size,
        hand_size=hand_size,
        free_uses_per_letter=free_uses_per_letter,
        spell_checks_per_turn=spell_checks_per_turn,
    )
    logger.info(
        "Match started: %s %s, category=%s, seats=%s",
        mode.value, battle_type.value if battle_type else "", category, players,
    )
    return MatchState(
        mode=mode,
        game=game,
        order=players,
        active=first,
        benched=sides,
        battle_type=battle_type,
        max_hp=hp,
        cpu_side=cpu_side,
    )


def mount(ms: MatchState, side: str) -> MatchState:
    """Bench the active side and mount ``side`` into the shared game."""
    if side == ms.active:
        return ms
    assert not ms.game.placed, "cannot switch sides with tiles pending"
    benched = dict(ms.benched)
    incoming = benched.pop(side)
    benched[ms.active] = ms.game.player
    return replace(ms, game=ms.game.with_player(incoming), benched=benched, active=side)


# ----------------------------------------------------------------------
# In-turn commands
# ----------------------------------------------------------------------

def _require_open(ms: MatchState) -> None:
    if ms.finished:
        raise IllegalMove("The match is over.")


def update_game(ms: MatchState, fn, *args, **kwargs) -> MatchState:
    """Run a pending-placement command (``place_tile``, ``set_card``, ...)."""
    _require_open(ms)
    return replace(ms, game=fn(ms.game, *args, **kwargs))


def confirm(ms: MatchState, dictionary) -> tuple[MatchState, TurnRecord]:
    """Validate, score, resolve the special card, commit, then switch or end."""
    _require_open(ms)
    ms = _enter_phase(ms, Phase.VALIDATING)
    game = ms.game
    actor = game.player

    if actor.letter_limit is not None and len(game.placed) != actor.letter_limit:
        raise IllegalMove(
            f"You must place exactly {actor.letter_limit} tiles this turn."
        )
    validate_move(game.board, game.placed, dictionary).raise_if_illegal()

    ms = _enter_phase(ms, Phase.SCORING)
    breakdown = score_move(game.board, game.placed)
    words = tuple(w.word for w in breakdown.words)
    game = game.with_player(replace(actor, letter_limit=None))

    opp_side = ms.opponent_of(ms.active)
    outcome = resolve_special(
        game,
        words,
        breakdown,
        opponent=ms.benched.get(opp_side) if opp_side else None,
        battle_type=ms.battle_type,
        max_hp=ms.max_hp,
    )
    ctx = outcome.ctx

    ms = _enter_phase(ms, Phase.COMMITTING)
    game = replace(game.with_player(ctx.actor), bag=ctx.bag)
    multiplier = game.player.next_turn_multiplier
    game = commit_move(
        game,
        MoveResult(
            words=words,
            breakdown=breakdown.with_total(ctx.total),
            next_turn_multiplier=ctx.next_turn_multiplier,
        ),
    )

    opponent = ctx.opponent
    damage = ctx.damage
    if ms.battle_type is BattleType.HP and opponent is not None:
        dealt = min(game.last_turn_score, opponent.hp)
        opponent = replace(opponent, hp=opponent.hp - dealt)
        damage += dealt

    actor, poison = tick_poison(game.player, ms.battle_type)
    game = game.with_player(actor)
    benched = dict(ms.benched)
    if opp_side is not None:
        benched[opp_side] = opponent

    record = TurnRecord(
        turn=game.turn,
        side=ms.active,
        words=breakdown.words,
        base_score=breakdown.total,
        special_card=outcome.card.id if outcome.activated else None,
        special_effect=outcome.description,
        special_bonus=outcome.bonus,
        multiplier=multiplier,
        total_score=game.last_turn_score,
        cumulative_score=actor.score,
        damage_dealt=damage,
        hp_healed=ctx.healed,
    )
    if poison:
        logger.debug("%s took %d poison damage", ms.active, poison)
    logger.debug(
        "%s played %s for %d", ms.active, ", ".join(words), game.last_turn_score
    )
    ms = replace(ms, game=game, benched=benched)
    return _switch_or_end(ms, record), record


def pass_turn(ms: MatchState) -> tuple[MatchState, TurnRecord]:
    """Give up the turn. Pending tiles go back; poison still ticks."""
    _require_open(ms)
    game = apply_pass(ms.game)
    actor, _ = tick_poison(game.player, ms.battle_type)
    game = game.with_player(actor)
    record = TurnRecord(
        turn=game.turn,
        side=ms.active,
        cumulative_score=actor.score,
        passed=True,
    )
    logger.debug("%s passed", ms.active)
    return _switch_or_end(replace(ms, game=game), record), record


# Timeouts and disconnects are inbound passes
force_pass = pass_turn


def _hp_knockout(ms: MatchState) -> bool:
    if ms.battle_type is not BattleType.HP:
        return False
    return any(ms.player(side).hp <= 0 for side in ms.order)


def _enter_phase(ms: MatchState, phase: Phase) -> MatchState:
    logger.debug("%s: %s", ms.active, phase.value)
    return replace(ms, phase=phase)


def _switch_or_end(ms: MatchState, record: TurnRecord) -> MatchState:
    ms = _enter_phase(ms, Phase.SWITCH_OR_END)
    game = replace(ms.game, turn_history=ms.game.turn_history + (record,))
    if game.finished or _hp_knockout(ms):
        logger.info("Match finished after %d half-turns", game.turn)
        return replace(ms, game=replace(game, finished=True), phase=Phase.FINISHED)
    ms = replace(ms, game=game, phase=Phase.AWAITING_MOVE)
    if ms.mode.two_sided:
        ms = mount(ms, ms.opponent_of(ms.active))
    return ms


# ----------------------------------------------------------------------
# CPU
# ----------------------------------------------------------------------

def cpu_turn(
    ms: MatchState,
    dictionary,
    rng: random.Random | None = None,
    top_n: int = 5,
    node_budget: int | None = None,
) -> tuple[MatchState, TurnRecord]:
    """Search and play the active side's move, or pass when there is none."""
    player = ms.game.player
    candidate = find_best_move(
        ms.game.board,
        player.rack,
        dictionary,
        letter_limit=player.letter_limit,
        rng=rng,
        top_n=top_n,
        node_budget=node_budget,
    )
    return play_candidate(ms, candidate, dictionary)


def play_candidate(
    ms: MatchState, candidate: Candidate | None, dictionary
) -> tuple[MatchState, TurnRecord]:
    """Play a searched move through the normal place-and-confirm path."""
    if candidate is None:
        return pass_turn(ms)
    game = undo(ms.game)
    try:
        for p in candidate.placements:
            game = place_tile(game, p.row, p.col, rack_index=p.rack_index)
        return confirm(replace(ms, game=game), dictionary)
    except IllegalMove as e:
        # Stale search results (board changed since the search began) land here
        logger.warning("CPU move rejected (%s), passing instead", e.reason)
        return pass_turn(ms)


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

def standings(ms: MatchState) -> dict[str, int]:
    """Score per side, or HP per side in HP battles."""
    if ms.battle_type is BattleType.HP:
        return {side: ms.player(side).hp for side in ms.order}
    return {side: ms.player(side).score for side in ms.order}


def winner(ms: MatchState) -> str | None:
    """Leading side, or None on a tie (and always None in solo play)."""
    if not ms.mode.two_sided:
        return None
    table = standings(ms)
    best = max(table.values())
    leaders = [s for s, v in table.items() if v == best]
    return leaders[0] if len(leaders) == 1 else None
