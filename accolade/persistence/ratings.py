"""Rating Ledger.

Stores each rater's 13-criterion scores per finalist. Rows can be saved
as drafts and filled in over several calls: criteria left out of a call
keep their stored values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime

import aiosqlite

from accolade.errors import InvalidRatingValue, NotInShortlist
from accolade.persistence.database import CRITERION_COLUMNS, read_lock, write_transaction
from accolade.schemas.rating import (
    MAX_SCORE,
    MIN_SCORE,
    NUM_CRITERIA,
    CompletionState,
    RaterProgress,
    RatingRow,
    RatingScores,
    RatingStatus,
    completion_of,
)

logger = logging.getLogger(__name__)

# Either 13 ordered scores (None = not provided) or criterion number → score
ScoreInput = Sequence[int | None] | Mapping[int, int | None]


def _valid_score(value: object) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_SCORE <= value <= MAX_SCORE
    )


def normalize_scores(
    scores: ScoreInput, clear: Iterable[int] = (),
) -> tuple[dict[int, int], set[int]]:
    """Validate a rating submission before anything is written.

    Criteria are numbered 1 to 13. Every problem is collected, keyed as it
    was submitted, so the caller sees all rejected fields at once.

    Returns:
        (criterion → new score, criteria to reset to unset)

    Raises:
        InvalidRatingValue: If any score is outside [1, 5], any criterion
            number is unknown, or a criterion is both set and cleared.
    """
    if isinstance(scores, Mapping):
        items = list(scores.items())
    else:
        items = list(enumerate(scores, start=1))

    provided: dict[int, int] = {}
    invalid: dict[object, object] = {}
    for criterion, value in items:
        if not isinstance(criterion, int) or not 1 <= criterion <= NUM_CRITERIA:
            invalid[criterion] = value
        elif value is None:
            continue
        elif _valid_score(value):
            provided[criterion] = value
        else:
            invalid[criterion] = value

    cleared: set[int] = set()
    for criterion in clear:
        if not isinstance(criterion, int) or not 1 <= criterion <= NUM_CRITERIA:
            invalid[criterion] = None
        elif criterion in provided:
            invalid[criterion] = provided[criterion]
        else:
            cleared.add(criterion)

    if invalid:
        raise InvalidRatingValue(invalid)
    return provided, cleared


def _row_scores(row: aiosqlite.Row) -> RatingScores:
    return [row[col] for col in CRITERION_COLUMNS]


def _row_to_rating(row: aiosqlite.Row) -> RatingRow:
    return RatingRow(
        period_id=row["period_id"],
        rater_id=row["rater_id"],
        candidate_id=row["candidate_id"],
        scores=_row_scores(row),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class RatingLedger:
    """Persistent per-rater, per-finalist rubric scores."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def submit_rating(
        self,
        period_id: str,
        rater_id: str,
        candidate_id: str,
        scores: ScoreInput,
        shortlist: Sequence[str],
        clear: Iterable[int] = (),
    ) -> CompletionState:
        """Upsert a rater's scores for one finalist.

        The merge happens in a single INSERT ... ON CONFLICT statement, so
        concurrent calls for the same key never lose each other's criteria
        halfway through.

        Returns:
            The row's completion state after the write.

        Raises:
            NotInShortlist: If the candidate is not a finalist.
            InvalidRatingValue: If any field fails validation. Nothing is
                written in that case.
        """
        if candidate_id not in shortlist:
            raise NotInShortlist(candidate_id)
        provided, cleared = normalize_scores(scores, clear)

        now = datetime.now(UTC).isoformat()
        values = [provided.get(i) for i in range(1, NUM_CRITERIA + 1)]
        updates = [
            f"{col} = excluded.{col}" if i in provided else f"{col} = NULL"
            for i, col in enumerate(CRITERION_COLUMNS, start=1)
            if i in provided or i in cleared
        ]
        updates.append("updated_at = excluded.updated_at")
        columns = ", ".join(CRITERION_COLUMNS)
        placeholders = ", ".join("?" for _ in CRITERION_COLUMNS)

        async with write_transaction(self._db) as db:
            await db.execute(
                f"""
                INSERT INTO ratings
                    (period_id, rater_id, candidate_id, {columns},
                     created_at, updated_at)
                VALUES (?, ?, ?, {placeholders}, ?, ?)
                ON CONFLICT (period_id, rater_id, candidate_id)
                DO UPDATE SET {", ".join(updates)}
                """,  # noqa: S608
                (period_id, rater_id, candidate_id, *values, now, now),
            )
            async with db.execute(
                f"""
                SELECT {columns} FROM ratings
                WHERE period_id = ? AND rater_id = ? AND candidate_id = ?
                """,  # noqa: S608
                (period_id, rater_id, candidate_id),
            ) as cursor:
                row = await cursor.fetchone()

        state = completion_of(_row_scores(row))
        logger.info(
            "Saved rating by %s for %s in %s (%s)",
            rater_id, candidate_id, period_id, state.value,
        )
        return state

    async def get_user_rating(
        self, period_id: str, rater_id: str, candidate_id: str,
    ) -> RatingScores | None:
        async with read_lock(self._db) as db, db.execute(
            """
            SELECT * FROM ratings
            WHERE period_id = ? AND rater_id = ? AND candidate_id = ?
            """,
            (period_id, rater_id, candidate_id),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_scores(row) if row else None

    async def get_user_ratings_map(
        self, period_id: str, rater_id: str,
    ) -> dict[str, RatingScores]:
        """Every stored rating by this rater, keyed by candidate id."""
        async with read_lock(self._db) as db, db.execute(
            "SELECT * FROM ratings WHERE period_id = ? AND rater_id = ?",
            (period_id, rater_id),
        ) as cursor:
            return {row["candidate_id"]: _row_scores(row) for row in await cursor.fetchall()}

    async def rater_progress(
        self, period_id: str, rater_id: str, shortlist: Sequence[str],
    ) -> RaterProgress:
        """Completion state per finalist for one rater."""
        stored = await self.get_user_ratings_map(period_id, rater_id)
        return RaterProgress(
            rater_id=rater_id,
            states={cid: completion_of(stored.get(cid)) for cid in shortlist},
        )

    async def ratings_for(
        self, period_id: str, candidate_ids: Sequence[str],
    ) -> list[RatingRow]:
        """All rating rows for the given candidates."""
        if not candidate_ids:
            return []
        placeholders = ", ".join("?" for _ in candidate_ids)
        async with read_lock(self._db) as db, db.execute(
            f"""
            SELECT * FROM ratings
            WHERE period_id = ? AND candidate_id IN ({placeholders})
            ORDER BY rater_id, candidate_id
            """,  # noqa: S608
            (period_id, *candidate_ids),
        ) as cursor:
            return [_row_to_rating(row) for row in await cursor.fetchall()]

    async def get_completion_status(
        self, period_id: str, raters: Sequence[str], shortlist: Sequence[str],
    ) -> RatingStatus:
        """Raters who have completed a rating for every finalist."""
        complete: dict[str, set[str]] = {}
        for row in await self.ratings_for(period_id, shortlist):
            if row.state == CompletionState.COMPLETE:
                complete.setdefault(row.rater_id, set()).add(row.candidate_id)

        finalists = set(shortlist)
        done = [
            rater for rater in raters
            if finalists and complete.get(rater, set()) >= finalists
        ]
        return RatingStatus(
            required_count=len(raters),
            completed_count=len(done),
            completed_user_ids=done,
        )
