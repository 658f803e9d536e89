"""Tests for special card effects and their resolution."""

from dataclasses import replace

import pytest

from conftest import make_card, plain_layout
from tilebattle.cards.catalogue import Rarity
from tilebattle.cards.effects import (
    EFFECTS,
    BonusFlat,
    Cleanse,
    DrawNormal,
    DrawSpecial,
    EffectContext,
    ForceLetterCount,
    HealHp,
    Mirror,
    NextTurnMultiplier,
    PerLetterBonus,
    Poison,
    RecoverFree,
    ReduceOpponent,
    StealPoints,
    UpgradeBonus,
    WordMultiplier,
    effect_for,
    is_activated,
    resolve_special,
    tick_poison,
)
from tilebattle.engine.board import Board
from tilebattle.engine.lifecycle import place_tile, set_card
from tilebattle.engine.scoring import score_move
from tilebattle.engine.state import (
    BattleType,
    GameState,
    PlayerState,
    StatusEffects,
    new_player,
)


def _cat_board():
    board = Board.empty(plain_layout())
    state = GameState(
        board=board,
        bag=("X", "Y", "Z"),
        player=new_player("alice", ("C", "A", "T", "D", "O", "G", "E")),
        category="animals",
        max_turns=10,
        turn_limit=10,
    )
    for i in range(3):
        state = place_tile(state, 3, 2 + i, rack_index=i)
    return state


def _ctx(actor=None, opponent=None, battle_type=BattleType.SCORE, max_hp=100):
    state = _cat_board()
    base = score_move(state.board, state.placed)
    return EffectContext(
        actor=actor or PlayerState(name="alice"),
        opponent=opponent,
        bag=state.bag,
        board=state.board,
        placements=state.placed,
        base=base,
        total=base.total,
        battle_type=battle_type,
        max_hp=max_hp,
    )


def _armed(card, deck=()):
    state = _cat_board()
    # Cards must be armed before tiles go down
    placed, board = state.placed, state.board
    state = replace(state, placed=(), board=Board.empty(plain_layout()))
    state = state.with_player(
        replace(state.player, special_hand=(card,) + tuple(deck))
    )
    state = set_card(state, card.instance_id)
    return replace(state, placed=placed, board=board)


# ------------------------------------------------------------------
# Level scaling
# ------------------------------------------------------------------

class TestScaling:
    @pytest.mark.parametrize("kind", sorted(EFFECTS))
    def test_never_weaker_at_higher_level(self, kind):
        cls = EFFECTS[kind]
        magnitudes = [cls.from_card(2, level, Rarity.N).magnitude for level in range(1, 6)]
        assert magnitudes == sorted(magnitudes)

    def test_linear_points(self):
        assert BonusFlat.from_card(10, 1, Rarity.N).points == 10
        assert BonusFlat.from_card(10, 3, Rarity.N).points == 15
        assert BonusFlat.from_card(10, 5, Rarity.N).points == 20

    def test_counts_step_at_levels_three_and_five(self):
        counts = [DrawNormal.from_card(1, level, Rarity.N).count for level in range(1, 6)]
        assert counts == [1, 1, 2, 2, 3]

    def test_multiplier_increments(self):
        assert NextTurnMultiplier.from_card(1.5, 1, Rarity.R).factor == 1.5
        assert NextTurnMultiplier.from_card(1.5, 3, Rarity.R).factor == 2.0

    def test_poison_duration_grows_every_two_levels(self):
        assert Poison.from_card(4, 1, Rarity.R).turns == 3
        assert Poison.from_card(4, 3, Rarity.R).turns == 4
        assert Poison.from_card(4, 5, Rarity.R).turns == 5

    def test_ssr_multiplier_is_capped(self):
        assert WordMultiplier.from_card(2, 1, Rarity.SSR).cap == 40
        assert WordMultiplier.from_card(2, 5, Rarity.SSR).cap == 80
        assert WordMultiplier.from_card(2, 5, Rarity.SR).cap is None

    def test_effect_for_card(self):
        effect = effect_for(make_card("CAT", "bonus_flat", 10, level=5))
        assert effect == BonusFlat(points=20)


# ------------------------------------------------------------------
# Self effects
# ------------------------------------------------------------------

class TestSelfEffects:
    def test_bonus_flat(self):
        assert BonusFlat(points=10).apply(_ctx()).total == 19

    def test_word_multiplier(self):
        assert WordMultiplier(factor=1.5).apply(_ctx()).total == 14

    def test_word_multiplier_cap(self):
        ctx = replace(_ctx(), total=100)
        assert WordMultiplier(factor=2.0, cap=40).apply(ctx).total == 140
        assert WordMultiplier(factor=2.0).apply(ctx).total == 200

    def test_per_letter_bonus(self):
        assert PerLetterBonus(points=2).apply(_ctx()).total == 9 + 6

    def test_upgrade_bonus(self):
        ctx = UpgradeBonus(cells=1).apply(_ctx())
        assert ctx.total == 12

    def test_next_turn_multiplier_only_recorded(self):
        ctx = NextTurnMultiplier(factor=1.5).apply(_ctx())
        assert ctx.total == 9
        assert ctx.next_turn_multiplier == 1.5

    def test_draw_normal(self):
        ctx = DrawNormal(count=2).apply(_ctx())
        assert ctx.actor.rack == ("Z", "Y")
        assert ctx.bag == ("X",)

    def test_draw_special_respects_hand_cap(self):
        hand = tuple(make_card(w) for w in ("CAT", "DOG", "COW"))
        deck = tuple(make_card(w) for w in ("RAT", "OWL"))
        actor = PlayerState(name="alice", special_hand=hand, special_deck=deck)
        ctx = DrawSpecial(count=2).apply(_ctx(actor=actor))
        assert len(ctx.actor.special_hand) == 4
        assert len(ctx.actor.special_deck) == 1

    def test_recover_free(self):
        pool = {**PlayerState(name="a").free_pool, "A": 2, "Q": 1}
        actor = PlayerState(name="alice", free_pool=pool)
        ctx = RecoverFree(count=1).apply(_ctx(actor=actor))
        assert ctx.actor.free_pool["A"] == 1
        assert ctx.actor.free_pool["Q"] == 1

    def test_cleanse(self):
        actor = PlayerState(
            name="alice",
            letter_limit=2,
            status=StatusEffects(poison_damage=4, poison_turns=2, shield=1),
        )
        ctx = Cleanse().apply(_ctx(actor=actor))
        assert not ctx.actor.status.poisoned
        assert ctx.actor.letter_limit is None
        assert ctx.actor.status.shield == 1

    def test_heal_only_in_hp_battles(self):
        actor = PlayerState(name="alice", hp=80)
        assert HealHp(amount=10).apply(_ctx(actor=actor)).actor.hp == 80
        ctx = HealHp(amount=30).apply(_ctx(actor=actor, battle_type=BattleType.HP))
        assert ctx.actor.hp == 100
        assert ctx.healed == 20


# ------------------------------------------------------------------
# Opponent effects, shield and mirror
# ------------------------------------------------------------------

class TestOpponentEffects:
    def test_reduce_score(self):
        opp = PlayerState(name="bob", score=5)
        ctx = ReduceOpponent(points=8).apply(_ctx(opponent=opp))
        assert ctx.opponent.score == 0

    def test_reduce_hp(self):
        opp = PlayerState(name="bob", hp=50)
        ctx = ReduceOpponent(points=8).apply(
            _ctx(opponent=opp, battle_type=BattleType.HP)
        )
        assert ctx.opponent.hp == 42
        assert ctx.damage == 8

    def test_steal_score_capped_at_what_they_have(self):
        actor = PlayerState(name="alice", score=5)
        opp = PlayerState(name="bob", score=4)
        ctx = StealPoints(points=6).apply(_ctx(actor=actor, opponent=opp))
        assert ctx.actor.score == 9
        assert ctx.opponent.score == 0

    def test_steal_hp(self):
        actor = PlayerState(name="alice", hp=95)
        opp = PlayerState(name="bob", hp=50)
        ctx = StealPoints(points=6).apply(
            _ctx(actor=actor, opponent=opp, battle_type=BattleType.HP)
        )
        assert ctx.opponent.hp == 44
        assert ctx.actor.hp == 100
        assert ctx.damage == 6
        assert ctx.healed == 5

    def test_force_letter_count(self):
        opp = PlayerState(name="bob")
        ctx = ForceLetterCount(count=2).apply(_ctx(opponent=opp))
        assert ctx.opponent.letter_limit == 2

    def test_poison_sets_status(self):
        opp = PlayerState(name="bob")
        ctx = Poison(damage=4, turns=3).apply(_ctx(opponent=opp))
        assert ctx.opponent.status.poison_damage == 4
        assert ctx.opponent.status.poison_turns == 3


class TestResolveSpecial:
    def test_fires_when_word_formed(self):
        card = make_card("CAT", "bonus_flat", 10)
        state = _armed(card)
        outcome = resolve_special(state, ["CAT"], score_move(state.board, state.placed))
        assert outcome.activated
        assert outcome.bonus == 10
        assert outcome.ctx.total == 19
        assert outcome.description.startswith("[CAT]")
        assert card not in outcome.ctx.actor.special_hand
        assert outcome.ctx.actor.used_special_ids == (card.instance_id,)

    def test_no_fire_without_word(self):
        card = make_card("DOG", "bonus_flat", 10)
        state = _armed(card)
        outcome = resolve_special(state, ["CAT"], score_move(state.board, state.placed))
        assert not outcome.activated
        assert outcome.bonus == 0
        assert outcome.description is None
        assert outcome.ctx.actor.special_hand == (card,)

    def test_category_must_match(self):
        card = make_card("CAT", categories=("food",))
        assert not is_activated(card, "animals", ["CAT"])
        assert is_activated(card, "food", ["cat"])
        wildcard = make_card("CAT", categories=("all",))
        assert is_activated(wildcard, "animals", ["CAT"])
        assert not is_activated(None, "animals", ["CAT"])

    def test_harmful_without_opponent_does_nothing(self):
        card = make_card("CAT", "reduce_opponent", 8)
        state = _armed(card)
        outcome = resolve_special(state, ["CAT"], score_move(state.board, state.placed))
        assert outcome.activated
        assert outcome.ctx.opponent is None
        assert outcome.ctx.total == 9
        assert "no opponent" in outcome.description

    def test_shield_absorbs(self):
        card = make_card("CAT", "reduce_opponent", 8)
        state = _armed(card)
        opp = PlayerState(name="bob", score=30, status=StatusEffects(shield=1))
        outcome = resolve_special(
            state, ["CAT"], score_move(state.board, state.placed), opponent=opp,
            battle_type=BattleType.SCORE,
        )
        assert outcome.ctx.opponent.score == 30
        assert outcome.ctx.opponent.status.shield == 0

    def test_shield_checked_before_mirror(self):
        card = make_card("CAT", "reduce_opponent", 8)
        state = _armed(card)
        opp = PlayerState(name="bob", score=30, status=StatusEffects(shield=1, mirror=1))
        outcome = resolve_special(
            state, ["CAT"], score_move(state.board, state.placed), opponent=opp,
            battle_type=BattleType.SCORE,
        )
        assert outcome.ctx.opponent.status == StatusEffects(shield=0, mirror=1)

    def test_mirror_reflects_onto_caster(self):
        card = make_card("CAT", "reduce_opponent", 8)
        state = _armed(card)
        state = state.with_player(replace(state.player, score=20))
        opp = PlayerState(name="bob", score=30, status=StatusEffects(mirror=1))
        outcome = resolve_special(
            state, ["CAT"], score_move(state.board, state.placed), opponent=opp,
            battle_type=BattleType.SCORE,
        )
        assert outcome.ctx.actor.score == 12
        assert outcome.ctx.opponent.score == 30
        assert outcome.ctx.opponent.status.mirror == 0

    def test_reflected_damage_not_credited_to_caster(self):
        card = make_card("CAT", "reduce_opponent", 8)
        state = _armed(card)
        state = state.with_player(replace(state.player, hp=60))
        opp = PlayerState(name="bob", hp=60, status=StatusEffects(mirror=1))
        outcome = resolve_special(
            state, ["CAT"], score_move(state.board, state.placed), opponent=opp,
            battle_type=BattleType.HP, max_hp=100,
        )
        assert outcome.ctx.actor.hp == 52
        assert outcome.ctx.damage == 0

    def test_next_turn_multiplier_reported(self):
        card = make_card("CAT", "next_turn_mult", 1.5)
        state = _armed(card)
        outcome = resolve_special(state, ["CAT"], score_move(state.board, state.placed))
        assert outcome.ctx.next_turn_multiplier == 1.5
        assert outcome.ctx.total == 9


class TestPoisonTick:
    def test_score_ticks_then_clears(self):
        player = PlayerState(
            name="bob", score=10, status=StatusEffects(poison_damage=4, poison_turns=2)
        )
        player, taken = tick_poison(player, BattleType.SCORE)
        assert (player.score, taken, player.status.poison_turns) == (6, 4, 1)
        player, taken = tick_poison(player, BattleType.SCORE)
        assert player.score == 2
        assert not player.status.poisoned
        player, taken = tick_poison(player, BattleType.SCORE)
        assert (player.score, taken) == (2, 0)

    def test_hp_ticks(self):
        player = PlayerState(
            name="bob", hp=3, status=StatusEffects(poison_damage=4, poison_turns=3)
        )
        player, taken = tick_poison(player, BattleType.HP)
        assert player.hp == 0
        assert taken == 3

    def test_mirror_stacks_scale_by_duration(self):
        assert Mirror.from_card(1, 1, Rarity.SR).stacks == 1
        assert Mirror.from_card(1, 5, Rarity.SR).stacks == 3
