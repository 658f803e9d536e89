"""Special card effects — one variant class per effect kind.

Each variant carries only the fields it needs. ``from_card`` holds the
level-scaling law for the kind and ``apply`` holds what it does. The
``EFFECTS`` table maps catalogue kind names to variant classes.

Scaling laws:
    linear       base × (1 + rate × (level − 1))
    table        base + (0, 0, 1, 1, 2)[level − 1]   small integer counts
    increment    base + step × (level − 1)            multipliers
    duration     base + (level − 1) // 2              extra turn every two levels
    fixed        base                                 categorical effects
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import ClassVar

from tilebattle.cards.catalogue import Rarity, SpecialCard
from tilebattle.cards.deck import draw_special
from tilebattle.engine.bag import draw_tiles
from tilebattle.engine.board import Board, Multiplier
from tilebattle.engine.scoring import ScoreBreakdown, round_half_up, score_move
from tilebattle.engine.state import BattleType, GameState, PlayerState

logger = logging.getLogger(__name__)

_COUNT_TABLE = (0, 0, 1, 1, 2)
MULTIPLIER_STEP = 0.25
POISON_BASE_TURNS = 3
SSR_BONUS_CAP = 40
SSR_BONUS_CAP_STEP = 10


def linear(base: float, level: int, rate: float) -> float:
    return base * (1 + rate * (level - 1))


def table(base: float, level: int) -> int:
    return int(base) + _COUNT_TABLE[level - 1]


def increment(base: float, level: int, step: float = MULTIPLIER_STEP) -> float:
    return round(base + step * (level - 1), 2)


def duration(base: float, level: int) -> int:
    return int(base) + (level - 1) // 2


@dataclass(frozen=True)
class EffectContext:
    """Everything an effect may read or change while a move resolves."""

    actor: PlayerState
    opponent: PlayerState | None
    bag: tuple[str, ...]
    board: Board
    placements: tuple
    base: ScoreBreakdown
    total: int
    battle_type: BattleType | None = None
    max_hp: int = 0
    hand_size: int = 4
    next_turn_multiplier: float = 1.0
    damage: int = 0
    healed: int = 0
    notes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def hp_battle(self) -> bool:
        return self.battle_type is BattleType.HP

    def note(self, text: str) -> EffectContext:
        return replace(self, notes=self.notes + (text,))

    def swapped(self) -> EffectContext:
        """Caster and target exchanged, for reflected effects."""
        assert self.opponent is not None
        return replace(self, actor=self.opponent, opponent=self.actor)


class Effect(ABC):
    """Base for effect variants. Subclasses are frozen dataclasses."""

    kind: ClassVar[str]
    targets_opponent: ClassVar[bool] = False

    @classmethod
    @abstractmethod
    def from_card(cls, base: float, level: int, rarity: Rarity) -> Effect:
        """Build the variant for a card of this base value and level."""

    @property
    @abstractmethod
    def magnitude(self) -> float:
        """Headline strength, for display and for comparing levels."""

    @abstractmethod
    def apply(self, ctx: EffectContext) -> EffectContext:
        """Apply to ``ctx.actor`` (and ``ctx.opponent`` for harmful kinds)."""


# ----------------------------------------------------------------------
# Self effects
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class BonusFlat(Effect):
    kind: ClassVar[str] = "bonus_flat"
    points: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(points=round_half_up(linear(base, level, 0.25)))

    @property
    def magnitude(self):
        return self.points

    def apply(self, ctx):
        return replace(ctx, total=ctx.total + self.points).note(f"+{self.points} points")


@dataclass(frozen=True)
class WordMultiplier(Effect):
    """Multiplies the turn score. SSR cards cap the bonus portion."""

    kind: ClassVar[str] = "word_multiplier"
    factor: float
    cap: int | None = None

    @classmethod
    def from_card(cls, base, level, rarity):
        cap = None
        if rarity is Rarity.SSR:
            cap = SSR_BONUS_CAP + (level - 1) * SSR_BONUS_CAP_STEP
        return cls(factor=increment(base, level), cap=cap)

    @property
    def magnitude(self):
        return self.factor

    def apply(self, ctx):
        extra = round_half_up(ctx.total * (self.factor - 1))
        if self.cap is not None:
            extra = min(extra, self.cap)
        return replace(ctx, total=ctx.total + extra).note(
            f"x{self.factor:g} word score (+{extra})"
        )


@dataclass(frozen=True)
class DrawNormal(Effect):
    kind: ClassVar[str] = "draw_normal"
    count: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(count=table(base, level))

    @property
    def magnitude(self):
        return self.count

    def apply(self, ctx):
        drawn, bag = draw_tiles(ctx.bag, self.count)
        actor = replace(ctx.actor, rack=ctx.actor.rack + drawn)
        return replace(ctx, actor=actor, bag=bag).note(f"drew {len(drawn)} extra tiles")


@dataclass(frozen=True)
class RecoverFree(Effect):
    kind: ClassVar[str] = "recover_free"
    count: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(count=table(base, level))

    @property
    def magnitude(self):
        return self.count

    def apply(self, ctx):
        pool = dict(ctx.actor.free_pool)
        recovered = 0
        for letter in sorted(pool):
            if recovered >= self.count:
                break
            if pool[letter] > 0:
                pool[letter] -= 1
                recovered += 1
        actor = replace(ctx.actor, free_pool=pool)
        return replace(ctx, actor=actor).note(f"recovered {recovered} free tiles")


@dataclass(frozen=True)
class UpgradeBonus(Effect):
    """Up to ``cells`` new tiles on plain squares score as double letters."""

    kind: ClassVar[str] = "upgrade_bonus"
    cells: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(cells=table(base, level))

    @property
    def magnitude(self):
        return self.cells

    def apply(self, ctx):
        plain = [
            p.pos for p in ctx.placements
            if ctx.board.cell(*p.pos).multiplier is Multiplier.NONE
        ][: self.cells]
        if not plain:
            return ctx.note("no plain squares to upgrade")
        rescored = score_move(ctx.board, ctx.placements, frozenset(plain))
        extra = rescored.total - ctx.base.total
        return replace(ctx, total=ctx.total + extra).note(
            f"upgraded {len(plain)} squares (+{extra})"
        )


@dataclass(frozen=True)
class NextTurnMultiplier(Effect):
    kind: ClassVar[str] = "next_turn_mult"
    factor: float

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(factor=increment(base, level))

    @property
    def magnitude(self):
        return self.factor

    def apply(self, ctx):
        return replace(ctx, next_turn_multiplier=self.factor).note(
            f"next turn x{self.factor:g}"
        )


@dataclass(frozen=True)
class PerLetterBonus(Effect):
    kind: ClassVar[str] = "per_letter_bonus"
    points: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(points=round_half_up(linear(base, level, 0.5)))

    @property
    def magnitude(self):
        return self.points

    def apply(self, ctx):
        bonus = self.points * len(ctx.placements)
        return replace(ctx, total=ctx.total + bonus).note(
            f"+{self.points} per tile (+{bonus})"
        )


@dataclass(frozen=True)
class DrawSpecial(Effect):
    kind: ClassVar[str] = "draw_special"
    count: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(count=table(base, level))

    @property
    def magnitude(self):
        return self.count

    def apply(self, ctx):
        hand, deck = draw_special(
            ctx.actor.special_hand, ctx.actor.special_deck, self.count, ctx.hand_size
        )
        n = len(hand) - len(ctx.actor.special_hand)
        actor = replace(ctx.actor, special_hand=hand, special_deck=deck)
        return replace(ctx, actor=actor).note(f"drew {n} special cards")


@dataclass(frozen=True)
class Shield(Effect):
    kind: ClassVar[str] = "shield"
    stacks: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(stacks=table(base, level))

    @property
    def magnitude(self):
        return self.stacks

    def apply(self, ctx):
        status = ctx.actor.status
        actor = replace(
            ctx.actor, status=replace(status, shield=status.shield + self.stacks)
        )
        return replace(ctx, actor=actor).note(f"shield x{self.stacks}")


@dataclass(frozen=True)
class Mirror(Effect):
    kind: ClassVar[str] = "mirror"
    stacks: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(stacks=duration(base, level))

    @property
    def magnitude(self):
        return self.stacks

    def apply(self, ctx):
        status = ctx.actor.status
        actor = replace(
            ctx.actor, status=replace(status, mirror=status.mirror + self.stacks)
        )
        return replace(ctx, actor=actor).note(f"mirror x{self.stacks}")


@dataclass(frozen=True)
class Cleanse(Effect):
    kind: ClassVar[str] = "cleanse"

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls()

    @property
    def magnitude(self):
        return 1

    def apply(self, ctx):
        status = replace(ctx.actor.status, poison_damage=0, poison_turns=0)
        actor = replace(ctx.actor, status=status, letter_limit=None)
        return replace(ctx, actor=actor).note("cleansed")


@dataclass(frozen=True)
class HealHp(Effect):
    kind: ClassVar[str] = "heal_hp"
    amount: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(amount=round_half_up(linear(base, level, 0.25)))

    @property
    def magnitude(self):
        return self.amount

    def apply(self, ctx):
        if not ctx.hp_battle:
            return ctx.note("heal has no effect outside HP battles")
        hp = min(ctx.max_hp, ctx.actor.hp + self.amount)
        healed = hp - ctx.actor.hp
        actor = replace(ctx.actor, hp=hp)
        return replace(ctx, actor=actor, healed=ctx.healed + healed).note(
            f"healed {healed} HP"
        )


# ----------------------------------------------------------------------
# Opponent effects
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ReduceOpponent(Effect):
    """Lowers the opponent's score, or deals direct damage in HP battles."""

    kind: ClassVar[str] = "reduce_opponent"
    targets_opponent: ClassVar[bool] = True
    points: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(points=round_half_up(linear(base, level, 0.25)))

    @property
    def magnitude(self):
        return self.points

    def apply(self, ctx):
        opp = ctx.opponent
        if ctx.hp_battle:
            dealt = min(self.points, opp.hp)
            opp = replace(opp, hp=opp.hp - dealt)
            ctx = replace(ctx, damage=ctx.damage + dealt)
            return replace(ctx, opponent=opp).note(f"{dealt} damage to {opp.name}")
        lost = min(self.points, opp.score)
        opp = replace(opp, score=opp.score - lost)
        return replace(ctx, opponent=opp).note(f"{opp.name} lost {lost} points")


@dataclass(frozen=True)
class ForceLetterCount(Effect):
    kind: ClassVar[str] = "force_letter_count"
    targets_opponent: ClassVar[bool] = True
    count: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(count=int(base))

    @property
    def magnitude(self):
        return self.count

    def apply(self, ctx):
        opp = replace(ctx.opponent, letter_limit=self.count)
        return replace(ctx, opponent=opp).note(
            f"{opp.name} must use exactly {self.count} tiles"
        )


@dataclass(frozen=True)
class StealPoints(Effect):
    """Moves points (HP in HP battles) from the opponent to the caster."""

    kind: ClassVar[str] = "steal_points"
    targets_opponent: ClassVar[bool] = True
    points: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(points=round_half_up(linear(base, level, 0.25)))

    @property
    def magnitude(self):
        return self.points

    def apply(self, ctx):
        actor, opp = ctx.actor, ctx.opponent
        if ctx.hp_battle:
            taken = min(self.points, opp.hp)
            hp = min(ctx.max_hp, actor.hp + taken)
            ctx = replace(
                ctx,
                actor=replace(actor, hp=hp),
                opponent=replace(opp, hp=opp.hp - taken),
                damage=ctx.damage + taken,
                healed=ctx.healed + (hp - actor.hp),
            )
            return ctx.note(f"drained {taken} HP from {opp.name}")
        taken = min(self.points, opp.score)
        ctx = replace(
            ctx,
            actor=replace(actor, score=actor.score + taken),
            opponent=replace(opp, score=opp.score - taken),
        )
        return ctx.note(f"stole {taken} points from {opp.name}")


@dataclass(frozen=True)
class Poison(Effect):
    kind: ClassVar[str] = "poison"
    targets_opponent: ClassVar[bool] = True
    damage: int
    turns: int

    @classmethod
    def from_card(cls, base, level, rarity):
        return cls(
            damage=round_half_up(linear(base, level, 0.25)),
            turns=duration(POISON_BASE_TURNS, level),
        )

    @property
    def magnitude(self):
        return self.damage

    def apply(self, ctx):
        status = replace(
            ctx.opponent.status, poison_damage=self.damage, poison_turns=self.turns
        )
        opp = replace(ctx.opponent, status=status)
        return replace(ctx, opponent=opp).note(
            f"poisoned {opp.name} ({self.damage} x {self.turns} turns)"
        )


EFFECTS: dict[str, type[Effect]] = {
    cls.kind: cls
    for cls in (
        BonusFlat,
        WordMultiplier,
        DrawNormal,
        RecoverFree,
        UpgradeBonus,
        NextTurnMultiplier,
        PerLetterBonus,
        DrawSpecial,
        Shield,
        Mirror,
        Cleanse,
        HealHp,
        ReduceOpponent,
        ForceLetterCount,
        StealPoints,
        Poison,
    )
}


def effect_for(card: SpecialCard) -> Effect:
    """The scaled effect variant for a card instance."""
    cls = EFFECTS[card.effect]
    return cls.from_card(card.definition.base_value, card.level, card.rarity)


# ----------------------------------------------------------------------
# Resolution
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class SpecialOutcome:
    """What resolving the set card did to this move."""

    activated: bool
    ctx: EffectContext
    card: SpecialCard | None = None
    effect: Effect | None = None

    @property
    def bonus(self) -> int:
        return self.ctx.total - self.ctx.base.total

    @property
    def description(self) -> str | None:
        if not self.activated:
            return None
        return f"[{self.card.word}] " + "; ".join(self.ctx.notes)


def is_activated(card: SpecialCard | None, category: str, words) -> bool:
    """Whether ``card`` fires for a move that formed ``words``."""
    if card is None or not card.matches_category(category):
        return False
    target = card.word.upper()
    return any(w.upper() == target for w in words)


def resolve_special(
    state: GameState,
    words,
    breakdown: ScoreBreakdown,
    opponent: PlayerState | None = None,
    battle_type: BattleType | None = None,
    max_hp: int = 0,
) -> SpecialOutcome:
    """Apply the mounted player's set card, if it activates.

    ``state`` carries this move's pending placements. The returned context
    holds the updated actor, opponent and bag, the adjusted turn total and
    any next-turn multiplier granted.
    """
    ctx = EffectContext(
        actor=state.player,
        opponent=opponent,
        bag=state.bag,
        board=state.board,
        placements=state.placed,
        base=breakdown,
        total=breakdown.total,
        battle_type=battle_type,
        max_hp=max_hp,
        hand_size=state.hand_size,
    )
    card = state.player.special_set
    if not is_activated(card, state.category, words):
        return SpecialOutcome(activated=False, ctx=ctx)

    actor = replace(
        ctx.actor,
        special_hand=tuple(
            c for c in ctx.actor.special_hand if c.instance_id != card.instance_id
        ),
        used_special_ids=ctx.actor.used_special_ids + (card.instance_id,),
    )
    ctx = replace(ctx, actor=actor)
    effect = effect_for(card)
    logger.debug("Special %s (%s) fired: %r", card.word, card.effect, effect)

    if effect.targets_opponent:
        ctx = _apply_harmful(effect, ctx)
    else:
        ctx = effect.apply(ctx)
    return SpecialOutcome(activated=True, ctx=ctx, card=card, effect=effect)


def _apply_harmful(effect: Effect, ctx: EffectContext) -> EffectContext:
    """Shield absorbs first, then mirror reflects onto the caster."""
    target = ctx.opponent
    if target is None:
        return ctx.note("no opponent to target")

    status = target.status
    if status.shield > 0:
        target = replace(target, status=replace(status, shield=status.shield - 1))
        return replace(ctx, opponent=target).note(f"{target.name}'s shield absorbed it")

    if status.mirror > 0:
        target = replace(target, status=replace(status, mirror=status.mirror - 1))
        reflected = effect.apply(replace(ctx, opponent=target).swapped()).swapped()
        # damage/healed describe the caster's own gains, which a reflection never is
        reflected = replace(reflected, damage=ctx.damage, healed=ctx.healed)
        return reflected.note(f"{target.name} reflected it")

    return effect.apply(ctx)


def tick_poison(player: PlayerState, battle_type: BattleType | None) -> tuple[PlayerState, int]:
    """Poison damage at the end of the poisoned side's turn.

    Returns the updated side and the damage taken (score or HP).
    """
    status = player.status
    if not status.poisoned:
        return player, 0
    if battle_type is BattleType.HP:
        taken = min(status.poison_damage, player.hp)
        player = replace(player, hp=player.hp - taken)
    else:
        taken = min(status.poison_damage, player.score)
        player = replace(player, score=player.score - taken)
    turns = status.poison_turns - 1
    new_status = (
        replace(status, poison_turns=turns) if turns > 0
        else replace(status, poison_damage=0, poison_turns=0)
    )
    return replace(player, status=new_status), taken


__all__ = [
    "EFFECTS",
    "Effect",
    "EffectContext",
    "SpecialOutcome",
    "effect_for",
    "is_activated",
    "resolve_special",
    "tick_poison",
]
