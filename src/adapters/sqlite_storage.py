"""SQLite delivery log adapter.

Subscribes to the humor processor and keeps an append-only record of every
delivered quip.
"""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from core.models import DeliveryOutcome


class SQLiteDeliveryLog:
    """Thin SQLite wrapper usable directly as a processor subscriber."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the deliveries table if it does not exist."""

        with self._connect() as conn:
            # deliveries is an append-only log for auditing.
            # Fields:
            # - id: auto-increment primary key
            # - delivered_at: outcome timestamp (ISO 8601)
            # - trigger_type: event that asked for the quip
            # - quip_text: text that was shown
            # - is_easter_egg: 1 when an easter egg rule supplied the quip
            # - easter_egg_id: matched rule id, if any
            # - matched_conditions: comma-separated predicate kinds
            # - notification_id: id returned by the notifier
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS deliveries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    delivered_at TIMESTAMP NOT NULL,
                    trigger_type TEXT,
                    quip_text TEXT NOT NULL,
                    is_easter_egg INTEGER NOT NULL,
                    easter_egg_id TEXT,
                    matched_conditions TEXT,
                    notification_id TEXT
                )
                """
            )

    def record(self, outcome: DeliveryOutcome) -> None:
        """Persist a delivered outcome; anything else is ignored."""

        if not outcome.delivered or outcome.quip_text is None:
            return
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO deliveries (
                    delivered_at,
                    trigger_type,
                    quip_text,
                    is_easter_egg,
                    easter_egg_id,
                    matched_conditions,
                    notification_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    outcome.timestamp.isoformat(),
                    outcome.trigger_type,
                    outcome.quip_text,
                    int(outcome.is_easter_egg),
                    outcome.easter_egg_id,
                    ",".join(outcome.matched_conditions),
                    outcome.notification_id,
                ),
            )

    __call__ = record

    def recent(self, limit: int = 10, easter_eggs_only: bool = False) -> List[sqlite3.Row]:
        """Return the newest deliveries first."""

        query = "SELECT * FROM deliveries"
        if easter_eggs_only:
            query += " WHERE is_easter_egg = 1"
        query += " ORDER BY id DESC LIMIT ?"
        with self._connect() as conn:
            return conn.execute(query, (limit,)).fetchall()

    def count(self, trigger_type: Optional[str] = None) -> int:
        with self._connect() as conn:
            if trigger_type is None:
                row = conn.execute("SELECT COUNT(*) AS total FROM deliveries").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS total FROM deliveries WHERE trigger_type = ?",
                    (trigger_type,),
                ).fetchone()
        return int(row["total"])
