"""Shared test fixtures for tilebattle."""

import pytest

from tilebattle.cards.catalogue import CardDef, Rarity, SpecialCard
from tilebattle.dictionary import DictEntry, WordDictionary
from tilebattle.engine.board import BoardLayout, Multiplier

TEST_WORDS = [
    ("CAT", "small domestic feline"),
    ("CATS", "more than one cat"),
    ("AT", "in the place of"),
    ("ACT", "to do something"),
    ("TAB", "small flap"),
    ("BAT", "flying mammal"),
    ("DOG", "animal that barks"),
    ("GOD", "deity"),
    ("COD", "ocean fish"),
    ("DOT", "small round mark"),
    ("TOE", "digit of the foot"),
    ("EAT", "to consume food"),
    ("TEA", "hot drink"),
    ("ATE", "consumed food"),
    ("OX", "strong farm animal"),
]


def plain_layout(size: int = 7, premiums: dict | None = None) -> BoardLayout:
    """A board with no premium squares except the ones given."""
    grid = [[Multiplier.NONE] * size for _ in range(size)]
    for (r, c), mult in (premiums or {}).items():
        grid[r][c] = mult
    return BoardLayout(size=size, multipliers=tuple(tuple(row) for row in grid))


def make_card(
    word: str,
    effect: str = "bonus_flat",
    base_value: float = 10,
    *,
    rarity: str = "N",
    categories=("animals",),
    level: int = 1,
    battle_only: bool = False,
    instance_id: str | None = None,
) -> SpecialCard:
    """A card instance built without a catalogue file."""
    definition = CardDef(
        id=f"{word.lower()}_{effect}",
        word=word.upper(),
        categories=tuple(categories),
        effect=effect,
        base_value=base_value,
        rarity=Rarity(rarity),
        battle_only=battle_only,
    )
    return SpecialCard(
        definition=definition,
        instance_id=instance_id or f"{word.lower()}-{level}",
        level=level,
    )


def stacked_bag(*racks, filler=()) -> tuple[str, ...]:
    """A bag whose tail deals ``racks`` in order, ``filler`` left underneath."""
    bag = list(filler)
    for rack in reversed(racks):
        bag.extend(reversed(rack))
    return tuple(bag)


@pytest.fixture
def words():
    return WordDictionary([DictEntry(w, m) for w, m in TEST_WORDS], category="animals")


@pytest.fixture
def layout():
    return plain_layout()


@pytest.fixture
def tmp_output(tmp_path):
    """Provide a temporary output directory for test runs."""
    return tmp_path / "output"
