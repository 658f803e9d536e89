"""Category word lists with meanings, and meaning-based spell check."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent / "data"

ALL_CATEGORY = "all"

SPELL_CHECK_LIMIT = 5


@dataclass(frozen=True)
class DictEntry:
    word: str
    meaning: str = ""

    def to_dict(self) -> dict:
        return {"word": self.word, "meaning": self.meaning}


class WordDictionary:
    """Upper-cased word set for one category, keeping entry order."""

    def __init__(self, entries, category: str = "") -> None:
        self.category = category
        self._entries: list[DictEntry] = []
        self._words: set[str] = set()
        for e in entries:
            entry = DictEntry(e) if isinstance(e, str) else e
            word = entry.word.strip().upper()
            if not word or word in self._words:
                continue
            self._words.add(word)
            self._entries.append(DictEntry(word, entry.meaning))

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.upper() in self._words

    def __iter__(self):
        return (e.word for e in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[DictEntry]:
        return list(self._entries)

    def is_valid(self, word: str) -> bool:
        return word in self

    def spell_check(self, query: str, limit: int = SPELL_CHECK_LIMIT) -> list[DictEntry]:
        """Entries whose meaning contains ``query``, at most ``limit``.

        Lets a player look up how to spell a word they only know by
        meaning. Matching ignores case; a blank query finds nothing.
        """
        needle = query.strip().casefold()
        if not needle:
            return []
        hits = [e for e in self._entries if needle in e.meaning.casefold()]
        return hits[:limit]


def load_dictionary(path: Path, category: str = "") -> WordDictionary:
    """Load a JSON list of ``{"word", "meaning"}`` objects (or bare words)."""
    with open(path) as f:
        raw = json.load(f)
    entries = [
        DictEntry(e) if isinstance(e, str)
        else DictEntry(e["word"], e.get("meaning", ""))
        for e in raw
    ]
    dictionary = WordDictionary(entries, category=category or Path(path).stem)
    logger.debug("Loaded %d words from %s", len(dictionary), path)
    return dictionary


def bundled_categories() -> list[str]:
    """Names of the category word lists shipped in ``data/``."""
    return sorted(p.stem for p in _DATA_DIR.glob("*.json"))


def load_category(category: str) -> WordDictionary:
    """Bundled dictionary for ``category``.

    ``"all"`` merges every bundled list; a word listed under several
    categories keeps the meaning from the first list alphabetically.
    """
    if category == ALL_CATEGORY:
        entries = []
        for name in bundled_categories():
            entries.extend(load_dictionary(_DATA_DIR / f"{name}.json").entries)
        return WordDictionary(entries, category=ALL_CATEGORY)
    path = _DATA_DIR / f"{category}.json"
    if not path.exists():
        raise ValueError(
            f"No bundled dictionary for category {category!r}; "
            f"expected one of {bundled_categories() + [ALL_CATEGORY]}"
        )
    return load_dictionary(path, category)
