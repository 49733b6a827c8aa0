"""Candidate pool snapshot per period.

The first time a period's pool is requested it is written once, in the
order the Eligibility Resolver returned it. That order is the pool order
used for shortlist tie-breaks and the small-pool shortlist. The voted
shortlist is frozen here the first time it is computed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

import aiosqlite

from accolade.persistence.database import read_lock, write_transaction

logger = logging.getLogger(__name__)


class CandidateStore:
    """Persistent candidate membership per period."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def list_candidates(self, period_id: str) -> list[str]:
        """Candidate ids for a period, in pool order."""
        async with read_lock(self._db) as db, db.execute(
            "SELECT user_id FROM candidates WHERE period_id = ? ORDER BY position",
            (period_id,),
        ) as cursor:
            return [row["user_id"] for row in await cursor.fetchall()]

    async def seed(self, period_id: str, user_ids: Sequence[str]) -> list[str]:
        """Write the pool for a period unless one already exists.

        Returns the stored pool, which is the existing one when the period
        was seeded before.
        """
        existing_pool = await self.list_candidates(period_id)
        if existing_pool or not user_ids:
            return existing_pool

        now = datetime.now(UTC).isoformat()
        async with write_transaction(self._db) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM candidates WHERE period_id = ?", (period_id,),
            ) as cursor:
                existing = (await cursor.fetchone())[0]
            if existing == 0:
                await db.executemany(
                    """
                    INSERT INTO candidates (period_id, user_id, position, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (period_id, user_id, position, now)
                        for position, user_id in enumerate(dict.fromkeys(user_ids))
                    ],
                )
                logger.info(
                    "Seeded %d candidates for period %s", len(set(user_ids)), period_id,
                )
        return await self.list_candidates(period_id)

    async def get_shortlist(self, period_id: str) -> list[str]:
        """The frozen finalists for a period, or [] before they are chosen."""
        async with read_lock(self._db) as db, db.execute(
            "SELECT candidate_id FROM finalists WHERE period_id = ? ORDER BY position",
            (period_id,),
        ) as cursor:
            return [row["candidate_id"] for row in await cursor.fetchall()]

    async def freeze_shortlist(self, period_id: str, shortlist: Sequence[str]) -> list[str]:
        """Store the finalists unless a period already has them.

        Returns the stored shortlist. When two callers race, the first one
        to commit wins and both get its list back.
        """
        now = datetime.now(UTC).isoformat()
        async with write_transaction(self._db) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM finalists WHERE period_id = ?", (period_id,),
            ) as cursor:
                existing = (await cursor.fetchone())[0]
            if existing == 0 and shortlist:
                await db.executemany(
                    """
                    INSERT INTO finalists (period_id, candidate_id, position, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (period_id, cid, position, now)
                        for position, cid in enumerate(shortlist)
                    ],
                )
                logger.info(
                    "Froze shortlist for %s: %s", period_id, ", ".join(shortlist),
                )
        return await self.get_shortlist(period_id)

    async def delete_period(self, period_id: str) -> int:
        """Drop a period's pool. Votes and finalists cascade with it."""
        async with write_transaction(self._db) as db:
            cursor = await db.execute(
                "DELETE FROM candidates WHERE period_id = ?", (period_id,),
            )
        return cursor.rowcount
