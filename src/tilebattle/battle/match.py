"""Match — stateful host around the pure battle flow.

Inbound commands are plain dicts (from a UI, a socket, or a test),
validated against ``command.schema.json``. Rule violations come back as
a ``Rejection`` inside the ``CommandResult``; the match state is left
untouched. The host also drives the CPU seat, writes telemetry for
every half-turn, and keeps online rooms saved after each commit or pass.
"""

from __future__ import annotations

import logging
import random
import uuid
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from pathlib import Path

import jsonschema

from tilebattle.battle.flow import (
    GameMode,
    MatchState,
    Phase,
    confirm,
    cpu_turn,
    force_pass,
    pass_turn,
    play_candidate,
    standings,
    start_match,
    update_game,
    winner,
)
from tilebattle.cards.catalogue import CardCatalogue, CatalogueError, load_catalogue
from tilebattle.cards.deck import can_add_to_deck, prepare_deck
from tilebattle.config import MatchConfig
from tilebattle.core.schemas import load_schema
from tilebattle.core.seed import SeedManager
from tilebattle.core.telemetry import TelemetryEntry
from tilebattle.cpu.search import Candidate, run_cpu_search_async
from tilebattle.dictionary import load_category, load_dictionary
from tilebattle.engine.bag import create_bag
from tilebattle.engine.board import TileSource, load_layout, standard_layout
from tilebattle.engine.lifecycle import (
    place_tile,
    remove_tile,
    set_card,
    undo,
    unset_card,
    use_spell_check,
)
from tilebattle.engine.state import BattleType, TurnRecord
from tilebattle.engine.validate import IllegalMove

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent / "command.schema.json"


@dataclass(frozen=True)
class Rejection:
    """Why a command was refused, and in which phase."""

    reason: str
    word: str | None = None
    phase: Phase = Phase.AWAITING_MOVE


@dataclass(frozen=True)
class CommandResult:
    accepted: bool
    rejection: Rejection | None = None
    record: TurnRecord | None = None  # set when the command ended a turn
    info: dict = field(default_factory=dict)


def _rejected(reason: str, word: str | None = None, phase: Phase = Phase.AWAITING_MOVE):
    return CommandResult(accepted=False, rejection=Rejection(reason, word, phase))


def build_deck(catalogue: CardCatalogue, entries) -> list:
    """Instantiate a configured deck, enforcing deck-building rules."""
    deck: list = []
    for entry in entries:
        card = catalogue.make_card(entry.id, entry.level)
        check = can_add_to_deck(deck, card)
        if not check.legal:
            raise CatalogueError(f"Cannot add {entry.id!r}: {check.reason}")
        deck.append(card)
    return deck


class Match:
    """One running match: solo, vs CPU, local PvP, or an online room."""

    def __init__(
        self,
        state: MatchState,
        dictionary,
        *,
        rng: random.Random | None = None,
        telemetry=None,
        store=None,
        match_id: str | None = None,
        room_id: str | None = None,
        top_n: int = 5,
        node_budget: int | None = None,
        auto_cpu: bool = True,
    ) -> None:
        self._state = state
        self._dictionary = dictionary
        self._schema = load_schema(_SCHEMA_PATH)
        self._rng = rng or random.Random()
        self._telemetry = telemetry
        self._store = store
        self._match_id = match_id or (
            telemetry.match_id if telemetry else f"{state.mode.value}-{uuid.uuid4().hex[:8]}"
        )
        self._room_id = room_id
        if state.mode is GameMode.ONLINE_PVP and self._room_id is None:
            self._room_id = uuid.uuid4().hex[:8]
        self._top_n = top_n
        self._node_budget = node_budget
        self._auto_cpu = auto_cpu
        self._finalized = state.finished

    @classmethod
    def create(
        cls,
        config: MatchConfig,
        *,
        dictionary=None,
        catalogue: CardCatalogue | None = None,
        layout=None,
        telemetry=None,
        store=None,
        auto_cpu: bool = True,
    ) -> Match:
        """Set up a fresh match from config; every random stream is seeded."""
        seeds = SeedManager(config.seed)
        mode = GameMode(config.mode)
        if dictionary is None:
            dictionary = (
                load_dictionary(config.paths.dictionary, config.category)
                if config.paths.dictionary else load_category(config.category)
            )
        if layout is None:
            layout = (
                load_layout(config.paths.layout) if config.paths.layout
                else standard_layout(config.board_size)
            )

        decks = {}
        if config.decks:
            if catalogue is None:
                catalogue = load_catalogue(config.paths.cards)
            for side, entries in config.decks.items():
                deck = build_deck(catalogue, entries)
                decks[side] = prepare_deck(
                    deck, seeds.get_rng(f"deck:{side}"), battle=mode.two_sided
                )

        state = start_match(
            mode,
            config.players,
            bag=create_bag(seeds.get_rng("bag")),
            layout=layout,
            category=config.category,
            max_turns=config.max_turns,
            battle_type=BattleType(config.battle_type) if mode.two_sided else None,
            max_hp=config.max_hp,
            decks=decks,
            rack_size=config.rack_size,
            hand_size=config.hand_size,
            free_uses_per_letter=config.free_uses_per_letter,
            spell_checks_per_turn=config.spell_checks_per_turn,
        )
        match = cls(
            state,
            dictionary,
            rng=seeds.get_rng("cpu"),
            telemetry=telemetry,
            store=store,
            room_id=config.room_id,
            top_n=config.cpu.top_n,
            node_budget=config.cpu.node_budget,
            auto_cpu=auto_cpu,
        )
        match._save_room()
        return match

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def dictionary(self):
        return self._dictionary

    @property
    def match_id(self) -> str:
        return self._match_id

    @property
    def room_id(self) -> str | None:
        return self._room_id

    @property
    def history(self) -> tuple[TurnRecord, ...]:
        return self._state.game.turn_history

    def current_player(self) -> str:
        return self._state.active

    def is_terminal(self) -> bool:
        return self._state.finished

    def is_cpu_turn(self) -> bool:
        return (
            not self._state.finished
            and self._state.cpu_side is not None
            and self._state.active == self._state.cpu_side
        )

    def get_scores(self) -> dict[str, int]:
        return standings(self._state)

    def winner(self) -> str | None:
        return winner(self._state)

    def get_state_snapshot(self) -> dict:
        """Compact per-turn summary, for telemetry and spectators."""
        ms = self._state
        return {
            "turn_number": ms.game.turn,
            "active_player": ms.active,
            "scores": {s: ms.player(s).score for s in ms.order},
            "hp": {s: ms.player(s).hp for s in ms.order} if ms.battle_type is BattleType.HP else None,
            "tiles_remaining": len(ms.game.bag),
            "terminal": ms.finished,
            "last_words": [w.word for w in ms.game.last_words],
            "last_turn_score": ms.game.last_turn_score,
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def submit(self, side: str, command: dict) -> CommandResult:
        """Apply one inbound command from ``side``."""
        try:
            jsonschema.validate(command, self._schema)
        except jsonschema.ValidationError as e:
            return _rejected(f"Schema validation: {e.message}")
        if self._state.finished:
            return _rejected("The match is over.")
        if side != self._state.active:
            return _rejected("Not your turn.")
        if side == self._state.cpu_side:
            return _rejected("The CPU plays its own turns.")

        action = command["action"]
        try:
            result = self._dispatch(action, command)
        except IllegalMove as e:
            phase = Phase.VALIDATING if action == "confirm" else Phase.AWAITING_MOVE
            logger.debug("%s rejected for %s: %s", action, side, e.reason)
            return _rejected(e.reason, e.word, phase)

        if result.record is not None:
            self._after_turn(result.record)
        return result

    def _dispatch(self, action: str, command: dict) -> CommandResult:
        ms = self._state
        info: dict = {}
        record = None

        if action == "place":
            source = TileSource(command.get("source", TileSource.NORMAL.value))
            ms = update_game(
                ms,
                place_tile,
                command["row"],
                command["col"],
                rack_index=command.get("rack_index"),
                letter=command.get("letter"),
                source=source,
            )
        elif action == "remove":
            ms = update_game(ms, remove_tile, command["row"], command["col"])
        elif action == "set_card":
            ms = update_game(ms, set_card, command["instance_id"])
        elif action == "unset_card":
            ms = update_game(ms, unset_card)
        elif action == "undo":
            ms = update_game(ms, undo)
        elif action == "spell_check":
            ms = update_game(ms, use_spell_check)
            hits = self._dictionary.spell_check(command["query"])
            info = {
                "results": [e.to_dict() for e in hits],
                "remaining": ms.game.player.spell_checks_remaining,
            }
        elif action == "confirm":
            ms, record = confirm(ms, self._dictionary)
        elif action == "pass":
            ms, record = pass_turn(ms)

        self._state = ms
        return CommandResult(accepted=True, record=record, info=info)

    def force_pass(self, side: str | None = None) -> CommandResult:
        """End the active side's turn, e.g. when its turn timer runs out."""
        if self._state.finished:
            return _rejected("The match is over.")
        if side is not None and side != self._state.active:
            return _rejected("Not your turn.")
        self._state, record = force_pass(self._state)
        self._after_turn(record)
        return CommandResult(accepted=True, record=record)

    # ------------------------------------------------------------------
    # CPU seat
    # ------------------------------------------------------------------

    def run_cpu(self) -> CommandResult:
        """Play the CPU's turn synchronously."""
        if not self.is_cpu_turn():
            return _rejected("It is not the CPU's turn.")
        self._state, record = cpu_turn(
            self._state,
            self._dictionary,
            rng=self._rng,
            top_n=self._top_n,
            node_budget=self._node_budget,
        )
        self._after_turn(record)
        return CommandResult(accepted=True, record=record)

    def run_cpu_async(self, executor: Executor) -> Future:
        """Start the CPU search on ``executor``.

        The future resolves to a ``Candidate`` (or None); hand it to
        ``apply_cpu_move`` from the thread that owns this match.
        """
        assert self.is_cpu_turn(), "run_cpu_async outside the CPU's turn"
        player = self._state.game.player
        return run_cpu_search_async(
            executor,
            self._state.game.board,
            player.rack,
            self._dictionary,
            letter_limit=player.letter_limit,
            rng=self._rng,
            top_n=self._top_n,
            node_budget=self._node_budget,
        )

    def apply_cpu_move(self, candidate: Candidate | None) -> CommandResult:
        if not self.is_cpu_turn():
            return _rejected("It is not the CPU's turn.")
        self._state, record = play_candidate(self._state, candidate, self._dictionary)
        self._after_turn(record)
        return CommandResult(accepted=True, record=record)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        """Full serializable state, enough to resume the match."""
        return {
            "match_id": self._match_id,
            "room_id": self._room_id,
            "state": self._state.to_dict(),
        }

    @classmethod
    def from_snapshot(cls, snapshot: dict, dictionary, **kwargs) -> Match:
        return cls(
            MatchState.from_dict(snapshot["state"]),
            dictionary,
            match_id=snapshot.get("match_id"),
            room_id=snapshot.get("room_id"),
            **kwargs,
        )

    @classmethod
    def resume_room(cls, store, room_id: str, dictionary, **kwargs) -> Match | None:
        """Rebuild an online room from its last saved snapshot."""
        snapshot = store.load_room(room_id)
        if snapshot is None:
            logger.warning("No saved snapshot for room %s", room_id)
            return None
        return cls.from_snapshot(snapshot, dictionary, store=store, **kwargs)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _save_room(self) -> None:
        if self._store and self._state.mode is GameMode.ONLINE_PVP:
            self._store.save_room(self._room_id, self.snapshot())

    def _after_turn(self, record: TurnRecord) -> None:
        if self._telemetry:
            self._telemetry.log_turn(
                TelemetryEntry(
                    turn_number=record.turn,
                    side=record.side,
                    mode=self._state.mode.value,
                    passed=record.passed,
                    words=[w.word for w in record.words],
                    total_score=record.total_score,
                    record=record.to_dict(),
                    state_snapshot=self.get_state_snapshot(),
                )
            )
        self._save_room()

        if self._state.finished:
            self._finalize()
        elif self._auto_cpu and self.is_cpu_turn():
            self.run_cpu()

    def _finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        scores = self.get_scores()
        result = self.winner()
        logger.info("Match %s over: %s, winner=%s", self._match_id, scores, result)
        if self._telemetry:
            ms = self._state
            self._telemetry.finalize_match(
                scores,
                result,
                extra={
                    "mode": ms.mode.value,
                    "category": ms.game.category,
                    "battle_type": ms.battle_type.value if ms.battle_type else None,
                    "turns": ms.game.turn,
                    "words": {s: list(ms.player(s).word_history) for s in ms.order},
                },
            )
