"""Scoring and winner selection.

Aggregates every rating a finalist received into a total and a percentage
of the maximum those raters could have given, then picks the winner.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from accolade.schemas.rating import MAX_SCORE, NUM_CRITERIA, CompletionState, RatingRow
from accolade.schemas.scoring import CandidateScore, WinnerDecision

logger = logging.getLogger(__name__)

# Highest total a single rater can give one candidate
MAX_PER_RATER = NUM_CRITERIA * MAX_SCORE


def score_percent(total: int, num_raters: int) -> float:
    """``total`` as a percentage of ``num_raters × 13 × 5``; 0 without raters."""
    if num_raters <= 0:
        return 0.0
    return max(0.0, min(100.0, total / (num_raters * MAX_PER_RATER) * 100))


def compute_scores(
    shortlist: Sequence[str], rows: Iterable[RatingRow],
) -> list[CandidateScore]:
    """Aggregate ratings per finalist.

    Draft rows count too: every filled criterion adds to the total, and a
    rater counts once per candidate as soon as any criterion is filled.
    Rows for candidates outside the shortlist are ignored.

    Returns:
        One CandidateScore per finalist, in shortlist order.
    """
    totals = dict.fromkeys(shortlist, 0)
    raters: dict[str, set[str]] = {cid: set() for cid in shortlist}

    for row in rows:
        if row.candidate_id not in totals or row.state == CompletionState.NONE:
            continue
        totals[row.candidate_id] += row.total
        raters[row.candidate_id].add(row.rater_id)

    return [
        CandidateScore(
            candidate_id=cid,
            total_score=totals[cid],
            num_raters=len(raters[cid]),
            score_percent=score_percent(totals[cid], len(raters[cid])),
        )
        for cid in shortlist
    ]


def rank_scores(scores: Sequence[CandidateScore]) -> list[CandidateScore]:
    """Leaderboard order: total desc, then raters desc, then input order."""
    indexed = list(enumerate(scores))
    indexed.sort(key=lambda item: (-item[1].total_score, -item[1].num_raters, item[0]))
    return [s for _, s in indexed]


def complete_candidates(rows: Iterable[RatingRow]) -> set[str]:
    """Candidates holding at least one complete rating."""
    return {row.candidate_id for row in rows if row.state == CompletionState.COMPLETE}


def pick_winner(
    scores: Sequence[CandidateScore], rated: set[str],
) -> WinnerDecision | None:
    """Choose the highest-scoring finalist.

    Args:
        scores: Per-finalist scores in shortlist order.
        rated: Candidates with at least one complete rating.

    Returns:
        None until some finalist has a complete rating. Otherwise the top
        of the leaderboard; ties on total go to the candidate with more
        raters, then to the earlier shortlist position, and every
        candidate sharing the top total is listed in tied_candidates.
    """
    if not any(s.candidate_id in rated for s in scores):
        return None

    ranked = rank_scores(scores)
    best = ranked[0]
    tied = [s.candidate_id for s in ranked if s.total_score == best.total_score]
    if len(tied) > 1:
        logger.warning(
            "Winner tie at %d points among %s, resolved to %s",
            best.total_score, tied, best.candidate_id,
        )
    return WinnerDecision(
        winner_id=best.candidate_id,
        total_score=best.total_score,
        num_raters=best.num_raters,
        tied_candidates=tied if len(tied) > 1 else [],
    )
