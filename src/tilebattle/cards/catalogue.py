"""Special card catalogue — immutable definitions plus leveled instances.

The catalogue itself is data (YAML or JSON). It is validated against
``catalogue.schema.json`` on load, and every effect kind must be one the
resolver knows.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import jsonschema
import yaml

from tilebattle.core.schemas import load_schema

ALL_CATEGORY = "all"
MIN_LEVEL = 1
MAX_LEVEL = 5

_SCHEMA_PATH = Path(__file__).parent / "catalogue.schema.json"


class Rarity(str, Enum):
    N = "N"
    R = "R"
    SR = "SR"
    SSR = "SSR"


class CatalogueError(Exception):
    """Malformed card data or an unknown card id."""


@dataclass(frozen=True)
class CardDef:
    id: str
    word: str
    categories: tuple[str, ...]
    effect: str
    base_value: float
    rarity: Rarity = Rarity.N
    meaning: str = ""
    description: str = ""
    battle_only: bool = False

    @property
    def primary_category(self) -> str | None:
        """First category that is not the wildcard, if any."""
        for cat in self.categories:
            if cat != ALL_CATEGORY:
                return cat
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "word": self.word,
            "categories": list(self.categories),
            "effect": self.effect,
            "base_value": self.base_value,
            "rarity": self.rarity.value,
            "meaning": self.meaning,
            "description": self.description,
            "battle_only": self.battle_only,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> CardDef:
        return cls(
            id=raw["id"],
            word=raw["word"].upper(),
            categories=tuple(raw["categories"]),
            effect=raw["effect"],
            base_value=raw["base_value"],
            rarity=Rarity(raw.get("rarity", "N")),
            meaning=raw.get("meaning", ""),
            description=raw.get("description", ""),
            battle_only=raw.get("battle_only", False),
        )


@dataclass(frozen=True)
class SpecialCard:
    """A card owned by a player: definition, unique instance id, level 1-5."""

    definition: CardDef
    instance_id: str
    level: int = MIN_LEVEL

    def __post_init__(self) -> None:
        assert MIN_LEVEL <= self.level <= MAX_LEVEL, f"bad level {self.level}"

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def word(self) -> str:
        return self.definition.word

    @property
    def categories(self) -> tuple[str, ...]:
        return self.definition.categories

    @property
    def rarity(self) -> Rarity:
        return self.definition.rarity

    @property
    def effect(self) -> str:
        return self.definition.effect

    def matches_category(self, category: str) -> bool:
        """Whether this card can fire in a match of ``category``."""
        return (
            category == ALL_CATEGORY
            or ALL_CATEGORY in self.categories
            or category in self.categories
        )

    def to_dict(self) -> dict:
        return {
            "definition": self.definition.to_dict(),
            "instance_id": self.instance_id,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> SpecialCard:
        return cls(
            definition=CardDef.from_dict(raw["definition"]),
            instance_id=raw["instance_id"],
            level=int(raw.get("level", MIN_LEVEL)),
        )


@dataclass
class CardCatalogue:
    """Card definitions by id."""

    cards: dict[str, CardDef] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self):
        return iter(self.cards.values())

    def __contains__(self, card_id: object) -> bool:
        return card_id in self.cards

    def get(self, card_id: str) -> CardDef:
        try:
            return self.cards[card_id]
        except KeyError:
            raise CatalogueError(f"Unknown card id: {card_id}") from None

    def make_card(
        self, card_id: str, level: int = MIN_LEVEL, instance_id: str | None = None
    ) -> SpecialCard:
        """Instantiate a card. Levels outside 1-5 are clamped."""
        level = max(MIN_LEVEL, min(MAX_LEVEL, level))
        return SpecialCard(
            definition=self.get(card_id),
            instance_id=instance_id or uuid.uuid4().hex[:12],
            level=level,
        )


def parse_catalogue(raw) -> CardCatalogue:
    """Build a catalogue from already-parsed data (``{"cards": [...]}``)."""
    # Late import: the effect table imports this module
    from tilebattle.cards.effects import EFFECTS

    try:
        jsonschema.validate(raw, load_schema(_SCHEMA_PATH))
    except jsonschema.ValidationError as e:
        raise CatalogueError(f"Schema validation: {e.message}") from e

    cards: dict[str, CardDef] = {}
    for entry in raw["cards"]:
        card = CardDef.from_dict(entry)
        if card.effect not in EFFECTS:
            raise CatalogueError(
                f"Card {card.id!r} has unknown effect kind {card.effect!r}"
            )
        if card.id in cards:
            raise CatalogueError(f"Duplicate card id: {card.id}")
        cards[card.id] = card
    return CardCatalogue(cards=cards)


def load_catalogue(path: Path) -> CardCatalogue:
    """Load a card catalogue from a YAML (or JSON) file."""
    with open(path) as f:
        raw = yaml.safe_load(f)
    return parse_catalogue(raw)
