"""Vote Ledger.

Records each voter's top-5 pick set and whether they finished voting.
Vote sets are replaced wholesale on resubmission.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

import aiosqlite

from accolade.errors import IncompleteVoteSet, InvalidSelection
from accolade.persistence.database import read_lock, write_transaction
from accolade.schemas.voting import SHORTLIST_SIZE, VotingStatus

logger = logging.getLogger(__name__)


def required_vote_count(pool_size: int) -> int:
    """Picks a complete vote set must hold for a pool of this size."""
    return min(SHORTLIST_SIZE, pool_size)


def voting_required(pool_size: int) -> bool:
    """Whether the selection round runs at all. Small pools skip it."""
    return pool_size > SHORTLIST_SIZE


def validate_selection(candidate_ids: Sequence[str], pool: Sequence[str]) -> list[str]:
    """Check a vote set against the pool and return it deduplicated.

    Raises:
        InvalidSelection: On duplicates, non-candidates, or the wrong size.
    """
    picks = list(candidate_ids)
    unique = list(dict.fromkeys(picks))
    if len(unique) != len(picks):
        raise InvalidSelection("Vote set contains duplicate candidates", candidate_ids=picks)

    members = set(pool)
    outsiders = [c for c in unique if c not in members]
    if outsiders:
        raise InvalidSelection(
            f"Not candidates in this period: {', '.join(outsiders)}",
            candidate_ids=outsiders,
        )

    if voting_required(len(pool)):
        if len(unique) != SHORTLIST_SIZE:
            raise InvalidSelection(
                f"Select exactly {SHORTLIST_SIZE} candidates, got {len(unique)}",
                candidate_ids=unique,
            )
    elif not unique:
        raise InvalidSelection("Vote set is empty")
    return unique


class VoteLedger:
    """Persistent vote sets and vote completion flags.

    All methods are async and operate on an aiosqlite connection
    initialized by database.init_db().
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def submit_votes(
        self,
        period_id: str,
        voter_id: str,
        candidate_ids: Sequence[str],
        pool: Sequence[str],
    ) -> list[str]:
        """Replace a voter's vote set for the period.

        Validation happens before anything is written; the delete and the
        inserts share one transaction, so no caller ever sees a mix of the
        old and new sets.

        Returns:
            The stored vote set.

        Raises:
            InvalidSelection: If the set violates size or membership rules.
        """
        picks = validate_selection(candidate_ids, pool)
        now = datetime.now(UTC).isoformat()

        async with write_transaction(self._db) as db:
            await db.execute(
                "DELETE FROM votes WHERE period_id = ? AND voter_id = ?",
                (period_id, voter_id),
            )
            await db.executemany(
                """
                INSERT INTO votes (period_id, voter_id, candidate_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                [(period_id, voter_id, cid, now) for cid in picks],
            )

        logger.info("Saved %d votes from %s for %s", len(picks), voter_id, period_id)
        return picks

    async def mark_completed(self, period_id: str, voter_id: str, pool_size: int) -> None:
        """Mark a voter as finished. Repeated calls are no-ops.

        Raises:
            IncompleteVoteSet: If the stored vote set is not full.
        """
        required = required_vote_count(pool_size)
        now = datetime.now(UTC).isoformat()

        async with write_transaction(self._db) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM votes WHERE period_id = ? AND voter_id = ?",
                (period_id, voter_id),
            ) as cursor:
                recorded = (await cursor.fetchone())[0]
            if recorded != required or recorded == 0:
                raise IncompleteVoteSet(voter_id, recorded, required)
            cursor = await db.execute(
                """
                INSERT OR IGNORE INTO vote_completion (period_id, voter_id, completed_at)
                VALUES (?, ?, ?)
                """,
                (period_id, voter_id, now),
            )

        if cursor.rowcount > 0:
            logger.info("Voter %s completed voting for %s", voter_id, period_id)

    async def has_completed(self, period_id: str, voter_id: str) -> bool:
        async with read_lock(self._db) as db, db.execute(
            "SELECT 1 FROM vote_completion WHERE period_id = ? AND voter_id = ? LIMIT 1",
            (period_id, voter_id),
        ) as cursor:
            return await cursor.fetchone() is not None

    async def get_voting_status(
        self, period_id: str, raters: Sequence[str],
    ) -> VotingStatus:
        """Quorum gauge over the current rater pool.

        Only completions by users still in ``raters`` count, so a voter who
        finished and then left the pool neither counts toward quorum nor
        stands in for someone who has not voted.
        """
        members = set(raters)
        async with read_lock(self._db) as db, db.execute(
            "SELECT voter_id FROM vote_completion WHERE period_id = ? ORDER BY completed_at",
            (period_id,),
        ) as cursor:
            completed = [
                row["voter_id"] for row in await cursor.fetchall()
                if row["voter_id"] in members
            ]
        return VotingStatus(
            required_count=len(members),
            completed_count=len(completed),
            completed_user_ids=completed,
        )

    async def get_user_votes(self, period_id: str, voter_id: str) -> list[str]:
        """The voter's current selection, completed or not."""
        async with read_lock(self._db) as db, db.execute(
            """
            SELECT v.candidate_id FROM votes v
            LEFT JOIN candidates c
                ON c.period_id = v.period_id AND c.user_id = v.candidate_id
            WHERE v.period_id = ? AND v.voter_id = ?
            ORDER BY c.position
            """,
            (period_id, voter_id),
        ) as cursor:
            return [row["candidate_id"] for row in await cursor.fetchall()]

    async def tally(self, period_id: str) -> dict[str, int]:
        """Vote count per candidate that received at least one vote."""
        async with read_lock(self._db) as db, db.execute(
            """
            SELECT candidate_id, COUNT(*) AS n FROM votes
            WHERE period_id = ?
            GROUP BY candidate_id
            """,
            (period_id,),
        ) as cursor:
            return {row["candidate_id"]: row["n"] for row in await cursor.fetchall()}
