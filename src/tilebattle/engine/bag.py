"""Tile bag — English letter distribution, seeded shuffle, tail draws."""

from __future__ import annotations

import random
import string

# Letter counts follow the standard distribution, without blanks (98 tiles)
LETTER_COUNTS: dict[str, int] = {
    "A": 9, "B": 2, "C": 2, "D": 4, "E": 12, "F": 2, "G": 3,
    "H": 2, "I": 9, "J": 1, "K": 1, "L": 4, "M": 2, "N": 6,
    "O": 8, "P": 2, "Q": 1, "R": 6, "S": 4, "T": 6, "U": 4,
    "V": 2, "W": 2, "X": 1, "Y": 2, "Z": 1,
}

TOTAL_TILES = sum(LETTER_COUNTS.values())

ALPHABET = string.ascii_uppercase


def create_bag(rng: random.Random) -> tuple[str, ...]:
    """Full bag, shuffled once with ``rng``."""
    tiles: list[str] = []
    for letter, count in LETTER_COUNTS.items():
        tiles.extend([letter] * count)
    rng.shuffle(tiles)
    return tuple(tiles)


def draw_tiles(
    bag: tuple[str, ...], count: int
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Draw up to ``count`` tiles from the tail of the bag.

    Returns ``(drawn, remaining)``. A short bag yields fewer tiles.
    """
    n = max(0, min(count, len(bag)))
    if n == 0:
        return (), bag
    drawn = tuple(reversed(bag[-n:]))
    return drawn, bag[:-n]


def empty_free_pool() -> dict[str, int]:
    """Per-letter wildcard usage counters, all zero."""
    return {letter: 0 for letter in ALPHABET}
