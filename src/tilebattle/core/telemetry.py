"""TelemetryLogger — JSONL match logging.

One logger per match. Writes one JSONL line per half-turn plus a match
summary as the final line. All entries include schema version and match ID.
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path

import tilebattle

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = "1.0.0"


@dataclass
class TelemetryEntry:
    """One half-turn of match telemetry."""

    turn_number: int
    side: str
    mode: str
    passed: bool
    words: list[str]
    total_score: int
    record: dict
    state_snapshot: dict


class TelemetryLogger:
    """Writes JSONL telemetry for a single match."""

    def __init__(self, output_dir: Path, match_id: str, store=None):
        self._output_dir = Path(output_dir)
        self._match_id = match_id
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._output_dir / f"{match_id}.jsonl"
        self._store = store

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def match_id(self) -> str:
        return self._match_id

    def log_turn(self, entry: TelemetryEntry) -> None:
        record = asdict(entry)
        record["schema_version"] = _SCHEMA_VERSION
        record["match_id"] = self._match_id
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._append(record)
        if self._store:
            self._store.log_turn(self._match_id, entry.record)

    def finalize_match(
        self,
        scores: dict[str, int],
        winner: str | None,
        extra: dict | None = None,
    ) -> None:
        record = {
            "schema_version": _SCHEMA_VERSION,
            "record_type": "match_summary",
            "match_id": self._match_id,
            "final_scores": scores,
            "winner": winner,
            "engine_version": tilebattle.__version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if extra:
            record.update(extra)
        self._append(record)
        if self._store:
            self._store.save_result(self._match_id, scores, winner, extra=extra)
        logger.info("Telemetry written to %s", self._file_path)

    def _append(self, record: dict) -> None:
        with open(self._file_path, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")
