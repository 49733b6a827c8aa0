"""Winner record store: one upserted row per period."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

import aiosqlite

from accolade.persistence.database import read_lock, write_transaction
from accolade.schemas.scoring import WinnerDecision, WinnerRecord

logger = logging.getLogger(__name__)


class WinnerStore:
    """Persisted period winners."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def record(self, period_id: str, decision: WinnerDecision) -> WinnerRecord:
        """Insert or replace the winner for a period."""
        recorded_at = datetime.now(UTC)
        async with write_transaction(self._db) as db:
            await db.execute(
                """
                INSERT INTO winners
                    (period_id, winner_id, total_score, num_raters,
                     tied_json, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (period_id) DO UPDATE SET
                    winner_id = excluded.winner_id,
                    total_score = excluded.total_score,
                    num_raters = excluded.num_raters,
                    tied_json = excluded.tied_json,
                    recorded_at = excluded.recorded_at
                """,
                (
                    period_id,
                    decision.winner_id,
                    decision.total_score,
                    decision.num_raters,
                    json.dumps(decision.tied_candidates),
                    recorded_at.isoformat(),
                ),
            )
        logger.info("Recorded winner %s for %s", decision.winner_id, period_id)
        return WinnerRecord(
            period_id=period_id, recorded_at=recorded_at, **decision.model_dump(),
        )

    async def get(self, period_id: str) -> WinnerRecord | None:
        async with read_lock(self._db) as db, db.execute(
            "SELECT * FROM winners WHERE period_id = ?", (period_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return WinnerRecord(
            period_id=row["period_id"],
            winner_id=row["winner_id"],
            total_score=row["total_score"],
            num_raters=row["num_raters"],
            tied_candidates=json.loads(row["tied_json"]),
            recorded_at=datetime.fromisoformat(row["recorded_at"]),
        )
