"""SeedManager — deterministic, HMAC-derived RNG streams per match.

Each random concern of a match (bag shuffle, each side's deck, CPU move
choice) gets its own stream, so drawing from one never shifts another.
"""

import hashlib
import hmac
import random


class SeedManager:
    """Produces deterministic, isolated Random instances for one match."""

    def __init__(self, match_seed: int):
        self._match_seed = match_seed

    @property
    def match_seed(self) -> int:
        return self._match_seed

    def get_stream_seed(self, stream: str) -> int:
        """Derive a stream seed via HMAC. Same inputs always produce the same seed."""
        key = self._match_seed.to_bytes(8, byteorder="big", signed=True)
        digest = hmac.new(key, stream.encode("utf-8"), hashlib.sha256).digest()
        return int.from_bytes(digest[:8], byteorder="big")

    def get_rng(self, stream: str) -> random.Random:
        """Return an isolated Random instance. Never touches global state."""
        return random.Random(self.get_stream_seed(stream))
