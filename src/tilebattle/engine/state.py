"""Game state — shared board state plus the mounted player's sub-state.

Every value here is treated as immutable: transitions build new records
with ``dataclasses.replace`` and copy the board before touching it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from tilebattle.cards.catalogue import SpecialCard
from tilebattle.cards.deck import deal_hand
from tilebattle.engine.bag import empty_free_pool
from tilebattle.engine.board import Board
from tilebattle.engine.scoring import WordScore
from tilebattle.engine.words import Placement

RACK_SIZE = 7
HAND_SIZE = 4
MAX_FREE_USES = 2
SPELL_CHECKS_PER_TURN = 3


class BattleType(str, Enum):
    SCORE = "score"
    HP = "hp"


@dataclass(frozen=True)
class StatusEffects:
    shield: int = 0
    poison_damage: int = 0
    poison_turns: int = 0
    mirror: int = 0

    @property
    def poisoned(self) -> bool:
        return self.poison_turns > 0 and self.poison_damage > 0

    def to_dict(self) -> dict:
        return {
            "shield": self.shield,
            "poison_damage": self.poison_damage,
            "poison_turns": self.poison_turns,
            "mirror": self.mirror,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> StatusEffects:
        return cls(**{k: int(raw.get(k, 0)) for k in
                      ("shield", "poison_damage", "poison_turns", "mirror")})


@dataclass(frozen=True)
class PlayerState:
    """Everything one side owns: rack, score/HP, specials, free pool, statuses."""

    name: str
    rack: tuple[str, ...] = ()
    score: int = 0
    hp: int = 0
    free_pool: dict[str, int] = field(default_factory=empty_free_pool)
    special_deck: tuple[SpecialCard, ...] = ()
    special_hand: tuple[SpecialCard, ...] = ()
    special_set: SpecialCard | None = None
    used_special_ids: tuple[str, ...] = ()
    last_special_category: str | None = None
    next_turn_multiplier: float = 1.0
    letter_limit: int | None = None
    spell_checks_remaining: int = SPELL_CHECKS_PER_TURN
    word_history: tuple[str, ...] = ()
    status: StatusEffects = field(default_factory=StatusEffects)

    def free_uses(self, letter: str) -> int:
        return self.free_pool.get(letter, 0)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "rack": list(self.rack),
            "score": self.score,
            "hp": self.hp,
            "free_pool": dict(self.free_pool),
            "special_deck": [c.to_dict() for c in self.special_deck],
            "special_hand": [c.to_dict() for c in self.special_hand],
            "special_set": self.special_set.to_dict() if self.special_set else None,
            "used_special_ids": list(self.used_special_ids),
            "last_special_category": self.last_special_category,
            "next_turn_multiplier": self.next_turn_multiplier,
            "letter_limit": self.letter_limit,
            "spell_checks_remaining": self.spell_checks_remaining,
            "word_history": list(self.word_history),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: dict) -> PlayerState:
        special_set = raw.get("special_set")
        return cls(
            name=raw["name"],
            rack=tuple(raw.get("rack", [])),
            score=int(raw.get("score", 0)),
            hp=int(raw.get("hp", 0)),
            free_pool={**empty_free_pool(), **raw.get("free_pool", {})},
            special_deck=tuple(SpecialCard.from_dict(c) for c in raw.get("special_deck", [])),
            special_hand=tuple(SpecialCard.from_dict(c) for c in raw.get("special_hand", [])),
            special_set=SpecialCard.from_dict(special_set) if special_set else None,
            used_special_ids=tuple(raw.get("used_special_ids", [])),
            last_special_category=raw.get("last_special_category"),
            next_turn_multiplier=float(raw.get("next_turn_multiplier", 1.0)),
            letter_limit=raw.get("letter_limit"),
            spell_checks_remaining=int(
                raw.get("spell_checks_remaining", SPELL_CHECKS_PER_TURN)
            ),
            word_history=tuple(raw.get("word_history", [])),
            status=StatusEffects.from_dict(raw.get("status", {})),
        )


@dataclass(frozen=True)
class TurnRecord:
    """One half-turn of history, for the turn log and telemetry."""

    turn: int
    side: str
    words: tuple[WordScore, ...] = ()
    base_score: int = 0
    special_card: str | None = None
    special_effect: str | None = None
    special_bonus: int = 0
    multiplier: float = 1.0
    total_score: int = 0
    cumulative_score: int = 0
    damage_dealt: int = 0
    hp_healed: int = 0
    passed: bool = False

    def to_dict(self) -> dict:
        return {
            "turn": self.turn,
            "side": self.side,
            "words": [w.to_dict() for w in self.words],
            "base_score": self.base_score,
            "special_card": self.special_card,
            "special_effect": self.special_effect,
            "special_bonus": self.special_bonus,
            "multiplier": self.multiplier,
            "total_score": self.total_score,
            "cumulative_score": self.cumulative_score,
            "damage_dealt": self.damage_dealt,
            "hp_healed": self.hp_healed,
            "passed": self.passed,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> TurnRecord:
        return cls(
            turn=raw["turn"],
            side=raw["side"],
            words=tuple(WordScore(w["word"], w["points"]) for w in raw.get("words", [])),
            base_score=raw.get("base_score", 0),
            special_card=raw.get("special_card"),
            special_effect=raw.get("special_effect"),
            special_bonus=raw.get("special_bonus", 0),
            multiplier=raw.get("multiplier", 1.0),
            total_score=raw.get("total_score", 0),
            cumulative_score=raw.get("cumulative_score", 0),
            damage_dealt=raw.get("damage_dealt", 0),
            hp_healed=raw.get("hp_healed", 0),
            passed=raw.get("passed", False),
        )


@dataclass(frozen=True)
class GameState:
    """Shared board state with one mounted ``PlayerState``.

    ``turn_limit`` is ``max_turns`` in solo play and ``max_turns * 2`` when
    two sides alternate (every half-turn advances ``turn``).
    """

    board: Board
    bag: tuple[str, ...]
    player: PlayerState
    category: str
    max_turns: int
    turn_limit: int
    placed: tuple[Placement, ...] = ()
    turn: int = 0
    finished: bool = False
    last_words: tuple[WordScore, ...] = ()
    last_turn_score: int = 0
    turn_history: tuple[TurnRecord, ...] = ()
    rack_size: int = RACK_SIZE
    hand_size: int = HAND_SIZE
    free_uses_per_letter: int = MAX_FREE_USES
    spell_checks_per_turn: int = SPELL_CHECKS_PER_TURN

    def with_player(self, player: PlayerState) -> GameState:
        return replace(self, player=player)

    def to_dict(self) -> dict:
        return {
            "board": self.board.to_dict(),
            "bag": list(self.bag),
            "player": self.player.to_dict(),
            "category": self.category,
            "max_turns": self.max_turns,
            "turn_limit": self.turn_limit,
            "placed": [p.to_dict() for p in self.placed],
            "turn": self.turn,
            "finished": self.finished,
            "last_words": [w.to_dict() for w in self.last_words],
            "last_turn_score": self.last_turn_score,
            "turn_history": [t.to_dict() for t in self.turn_history],
            "rack_size": self.rack_size,
            "hand_size": self.hand_size,
            "free_uses_per_letter": self.free_uses_per_letter,
            "spell_checks_per_turn": self.spell_checks_per_turn,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> GameState:
        return cls(
            board=Board.from_dict(raw["board"]),
            bag=tuple(raw["bag"]),
            player=PlayerState.from_dict(raw["player"]),
            category=raw["category"],
            max_turns=raw["max_turns"],
            turn_limit=raw["turn_limit"],
            placed=tuple(Placement.from_dict(p) for p in raw.get("placed", [])),
            turn=raw.get("turn", 0),
            finished=raw.get("finished", False),
            last_words=tuple(
                WordScore(w["word"], w["points"]) for w in raw.get("last_words", [])
            ),
            last_turn_score=raw.get("last_turn_score", 0),
            turn_history=tuple(
                TurnRecord.from_dict(t) for t in raw.get("turn_history", [])
            ),
            rack_size=raw.get("rack_size", RACK_SIZE),
            hand_size=raw.get("hand_size", HAND_SIZE),
            free_uses_per_letter=raw.get("free_uses_per_letter", MAX_FREE_USES),
            spell_checks_per_turn=raw.get("spell_checks_per_turn", SPELL_CHECKS_PER_TURN),
        )


def new_player(
    name: str,
    rack,
    deck=(),
    hp: int = 0,
    hand_size: int = HAND_SIZE,
    spell_checks: int = SPELL_CHECKS_PER_TURN,
) -> PlayerState:
    """Fresh side: opening hand dealt from the top of the prepared deck."""
    hand, deck = deal_hand(tuple(deck), hand_size)
    return PlayerState(
        name=name,
        rack=tuple(rack),
        hp=hp,
        special_deck=deck,
        special_hand=hand,
        spell_checks_remaining=spell_checks,
    )
