"""Deck construction rules and in-match deck/hand handling."""

from __future__ import annotations

import random

from tilebattle.cards.catalogue import Rarity, SpecialCard
from tilebattle.engine.validate import ValidationResult

DECK_MAX = 20
SR_MAX = 2
SSR_MAX = 1
HAND_SIZE = 4


def can_add_to_deck(deck, card: SpecialCard) -> ValidationResult:
    """Deck-building constraints: size cap, one copy per id, rarity caps."""
    deck = list(deck)
    if len(deck) >= DECK_MAX:
        return ValidationResult(
            legal=False, reason=f"A deck holds at most {DECK_MAX} cards."
        )
    if any(c.id == card.id for c in deck):
        return ValidationResult(
            legal=False, reason="Only one copy of each card is allowed."
        )
    if card.rarity is Rarity.SR:
        if sum(1 for c in deck if c.rarity is Rarity.SR) >= SR_MAX:
            return ValidationResult(
                legal=False, reason=f"At most {SR_MAX} SR cards per deck."
            )
    if card.rarity is Rarity.SSR:
        if sum(1 for c in deck if c.rarity is Rarity.SSR) >= SSR_MAX:
            return ValidationResult(
                legal=False, reason=f"At most {SSR_MAX} SSR card per deck."
            )
    return ValidationResult(legal=True)


def prepare_deck(
    deck, rng: random.Random, battle: bool = True
) -> tuple[SpecialCard, ...]:
    """Shuffle a deck for a match. Battle-only cards sit out solo games."""
    cards = [c for c in deck if battle or not c.definition.battle_only]
    rng.shuffle(cards)
    return tuple(cards)


def deal_hand(
    deck: tuple[SpecialCard, ...], hand_size: int = HAND_SIZE
) -> tuple[tuple[SpecialCard, ...], tuple[SpecialCard, ...]]:
    """Opening hand from the top of a prepared deck. Returns (hand, deck)."""
    n = min(hand_size, len(deck))
    return deck[:n], deck[n:]


def draw_special(
    hand: tuple[SpecialCard, ...],
    deck: tuple[SpecialCard, ...],
    count: int = 1,
    hand_size: int = HAND_SIZE,
) -> tuple[tuple[SpecialCard, ...], tuple[SpecialCard, ...]]:
    """Move up to ``count`` cards from deck to hand without passing the cap."""
    n = max(0, min(count, hand_size - len(hand), len(deck)))
    return hand + deck[:n], deck[n:]
