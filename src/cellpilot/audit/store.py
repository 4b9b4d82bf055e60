"""SQLite-backed audit trail of executed action batches."""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiosqlite

from ..config import settings
from ..protocol import ExecutionOutcome
from .models import AuditEntry

logger = logging.getLogger(__name__)


class AuditTrail:
    """Persists one row per executed action, grouped by batch."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else settings.database_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Open the database and create tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(str(self.db_path))

        await self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS action_audit (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                batch_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                kind TEXT NOT NULL,
                ok INTEGER NOT NULL,
                error TEXT,
                effect TEXT,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_action_audit_batch ON action_audit(batch_id);
            """
        )
        await self._connection.commit()

    async def close(self):
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def record_batch(self, outcomes: list[ExecutionOutcome]) -> str:
        """Store every outcome of a batch and return the batch id."""
        if self._connection is None:
            raise RuntimeError("AuditTrail.initialize() must be called before recording")

        batch_id = str(uuid.uuid4())
        timestamp = datetime.now(timezone.utc).isoformat()
        await self._connection.executemany(
            """
            INSERT INTO action_audit (batch_id, position, kind, ok, error, effect, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    batch_id,
                    outcome.index,
                    outcome.kind_label,
                    1 if outcome.ok else 0,
                    outcome.error.message if outcome.error else None,
                    json.dumps(outcome.effect or {}, default=str),
                    timestamp,
                )
                for outcome in outcomes
            ],
        )
        await self._connection.commit()
        logger.debug(f"Recorded batch {batch_id} with {len(outcomes)} outcome(s)")
        return batch_id

    async def recent(self, limit: int = 50) -> list[AuditEntry]:
        """Most recent entries first."""
        if self._connection is None:
            raise RuntimeError("AuditTrail.initialize() must be called before reading")

        async with self._connection.execute(
            "SELECT * FROM action_audit ORDER BY id DESC LIMIT ?", (limit,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    def _row_to_entry(self, row) -> AuditEntry:
        return AuditEntry(
            id=row[0],
            batch_id=row[1],
            position=row[2],
            kind=row[3],
            ok=bool(row[4]),
            error=row[5],
            effect=json.loads(row[6]) if row[6] else {},
            timestamp=datetime.fromisoformat(row[7]),
        )
