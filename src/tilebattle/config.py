"""Match configuration loader."""

import yaml
from dataclasses import dataclass, field
from pathlib import Path

from tilebattle.dictionary import ALL_CATEGORY, bundled_categories

_DATA_DIR = Path(__file__).parent / "data"

MODES = ("solo", "battle", "local_pvp", "online_pvp")


@dataclass
class CardEntry:
    id: str
    level: int = 1


@dataclass
class CpuConfig:
    top_n: int = 5
    node_budget: int | None = None  # max fits tried before the CPU gives up


@dataclass
class StorageConfig:
    mongo_uri_env: str = "TILEBATTLE_MONGO_URI"  # env var holding the URI
    db_name: str = "tilebattle"
    enabled: bool = False


@dataclass
class PathsConfig:
    dictionary: Path | None = None  # defaults to the bundled list for the category
    layout: Path | None = None  # defaults to the classic premium map
    cards: Path = _DATA_DIR / "cards.yaml"
    output_dir: Path | None = None  # telemetry JSONL directory


@dataclass
class MatchConfig:
    mode: str = "solo"
    battle_type: str = "score"  # "score" or "hp"
    category: str = "animals"
    seed: int = 0
    players: list[str] = field(default_factory=lambda: ["player"])
    max_turns: int = 10
    board_size: int = 15
    rack_size: int = 7
    hand_size: int = 4
    free_uses_per_letter: int = 2
    spell_checks_per_turn: int = 3
    max_hp: int = 100
    room_id: str | None = None  # online rooms only
    cpu: CpuConfig = field(default_factory=CpuConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    decks: dict[str, list[CardEntry]] = field(default_factory=dict)


def _opt_path(value) -> Path | None:
    return Path(value) if value else None


def parse_config(raw: dict) -> MatchConfig:
    """Build a MatchConfig from an already-parsed mapping."""
    m = raw.get("match", {})
    mode = m.get("mode", "solo")
    if mode not in MODES:
        raise ValueError(f"Unknown match mode {mode!r}; expected one of {MODES}")
    battle_type = m.get("battle_type", "score")
    if battle_type not in ("score", "hp"):
        raise ValueError(f"Unknown battle type {battle_type!r}")

    default_players = ["player"] if mode == "solo" else (
        ["player", "cpu"] if mode == "battle" else ["player_a", "player_b"]
    )
    players = list(m.get("players", default_players))
    expected = 1 if mode == "solo" else 2
    if len(players) != expected:
        raise ValueError(f"Mode {mode!r} needs {expected} players, got {players}")

    cpu_raw = raw.get("cpu", {})
    cpu = CpuConfig(
        top_n=cpu_raw.get("top_n", 5),
        node_budget=cpu_raw.get("node_budget"),
    )

    paths_raw = raw.get("paths", {})
    paths = PathsConfig(
        dictionary=_opt_path(paths_raw.get("dictionary")),
        layout=_opt_path(paths_raw.get("layout")),
        cards=_opt_path(paths_raw.get("cards")) or _DATA_DIR / "cards.yaml",
        output_dir=_opt_path(paths_raw.get("output_dir")),
    )

    category = m.get("category", "animals")
    known = bundled_categories() + [ALL_CATEGORY]
    if paths.dictionary is None and category not in known:
        raise ValueError(
            f"Unknown category {category!r}; expected one of {known} "
            "or a paths.dictionary word list"
        )

    st_raw = raw.get("storage", {})
    storage = StorageConfig(
        mongo_uri_env=st_raw.get("mongo_uri_env", "TILEBATTLE_MONGO_URI"),
        db_name=st_raw.get("db_name", "tilebattle"),
        enabled=st_raw.get("enabled", False),
    )

    # Deck entries are either a bare card id or {id, level}
    decks = {}
    for side, entries in raw.get("decks", {}).items():
        decks[side] = [
            CardEntry(id=e) if isinstance(e, str)
            else CardEntry(id=e["id"], level=e.get("level", 1))
            for e in entries or []
        ]

    return MatchConfig(
        mode=mode,
        battle_type=battle_type,
        category=category,
        seed=m.get("seed", 0),
        players=players,
        max_turns=m.get("max_turns", 10),
        board_size=m.get("board_size", 15),
        rack_size=m.get("rack_size", 7),
        hand_size=m.get("hand_size", 4),
        free_uses_per_letter=m.get("free_uses_per_letter", 2),
        spell_checks_per_turn=m.get("spell_checks_per_turn", 3),
        max_hp=m.get("max_hp", 100),
        room_id=m.get("room_id"),
        cpu=cpu,
        paths=paths,
        storage=storage,
        decks=decks,
    )


def load_config(path: Path) -> MatchConfig:
    """Load match config from YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return parse_config(raw)
