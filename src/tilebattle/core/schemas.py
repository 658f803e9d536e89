"""Schema loading utility."""

import json
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=None)
def _read(path: str) -> str:
    with open(path) as f:
        return f.read()


def load_schema(path: Path) -> dict:
    """Load a JSON Schema file and return as dict (file reads are cached)."""
    return json.loads(_read(str(path)))
