"""MongoStore — MongoDB persistence for results, turns and online rooms.

Connects once and verifies connectivity with a ping. If that fails the
store disables itself and every method becomes a no-op (``load_room``
returns None). All pymongo errors are caught and logged as warnings —
never raised to the caller, so a database outage never stops a match.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = "1.0.0"


class MongoStore:
    """Synchronous MongoDB store.

    Collections: ``results`` (one document per finished match),
    ``turns`` (one per half-turn) and ``rooms`` (latest snapshot per
    online room, upserted by ``room_id``).
    """

    def __init__(self, uri: str, db_name: str) -> None:
        self._uri = uri
        self._db_name = db_name
        self._disabled = False
        self._closed = False
        self._client = None
        self._db = None

        try:
            self._client = MongoClient(uri, serverSelectionTimeoutMS=5000)
            self._client.admin.command("ping")
        except PyMongoError as exc:
            logger.warning("MongoDB connection failed, persistence disabled: %s", exc)
            self._disabled = True
            return

        self._db = self._client[db_name]
        self._ensure_indexes()

    @property
    def disabled(self) -> bool:
        return self._disabled

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> MongoStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def save_result(
        self,
        match_id: str,
        scores: dict[str, int],
        winner: str | None,
        extra: dict | None = None,
    ) -> None:
        """Upsert the final result of a match."""
        if self._disabled:
            return
        doc: dict[str, Any] = {
            "match_id": match_id,
            "schema_version": _SCHEMA_VERSION,
            "scores": scores,
            "winner": winner,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "_ingested_at": datetime.now(timezone.utc),
        }
        if extra:
            doc.update(extra)
        try:
            self._db["results"].update_one(
                {"match_id": match_id}, {"$set": doc}, upsert=True
            )
        except PyMongoError as exc:
            logger.warning("Failed to save result %s: %s", match_id, exc)

    def log_turn(self, match_id: str, record: dict) -> None:
        """Insert one half-turn record."""
        if self._disabled:
            return
        doc = dict(record)
        doc["match_id"] = match_id
        doc["schema_version"] = _SCHEMA_VERSION
        doc["_ingested_at"] = datetime.now(timezone.utc)
        try:
            self._db["turns"].insert_one(doc)
        except PyMongoError as exc:
            logger.warning("Failed to insert turn for %s: %s", match_id, exc)

    def save_room(self, room_id: str, snapshot: dict) -> None:
        """Store the latest snapshot of an online room."""
        if self._disabled:
            return
        doc = {
            "room_id": room_id,
            "schema_version": _SCHEMA_VERSION,
            "snapshot": snapshot,
            "updated_at": datetime.now(timezone.utc),
        }
        try:
            self._db["rooms"].update_one(
                {"room_id": room_id}, {"$set": doc}, upsert=True
            )
        except PyMongoError as exc:
            logger.warning("Failed to save room %s: %s", room_id, exc)

    def load_room(self, room_id: str) -> dict | None:
        """Latest snapshot for ``room_id``, or None when missing or unavailable."""
        if self._disabled:
            return None
        try:
            doc = self._db["rooms"].find_one({"room_id": room_id})
        except PyMongoError as exc:
            logger.warning("Failed to load room %s: %s", room_id, exc)
            return None
        return doc["snapshot"] if doc else None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._client:
            self._client.close()

    # ------------------------------------------------------------------
    # Internal: indexes
    # ------------------------------------------------------------------

    def _ensure_indexes(self) -> None:
        """Create indexes for efficient querying."""
        try:
            self._db["results"].create_index("match_id", unique=True)
            self._db["results"].create_index("winner")
            self._db["turns"].create_index(
                [("match_id", ASCENDING), ("turn", ASCENDING)]
            )
            self._db["rooms"].create_index("room_id", unique=True)
        except PyMongoError as exc:
            logger.warning("Failed to create indexes: %s", exc)
