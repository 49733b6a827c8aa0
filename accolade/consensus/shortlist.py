"""Vote tallying and shortlist selection.

Reduces the candidate pool to at most five finalists. Small pools pass
through untouched; larger pools are cut by vote tally once every voter
has finished.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from accolade.errors import QuorumNotMet
from accolade.schemas.voting import SHORTLIST_SIZE, VoteCount, VotingStatus

logger = logging.getLogger(__name__)


def tally_votes(pool: Sequence[str], counts: Mapping[str, int]) -> list[VoteCount]:
    """Rank every pool member by votes received.

    Args:
        pool: Candidate ids in pool order.
        counts: Candidate id → number of votes. Missing ids count as zero;
            ids outside the pool are ignored.

    Returns:
        One VoteCount per pool member, most votes first. Equal tallies keep
        pool order, so earlier-joined candidates rank higher.
    """
    ranked = [
        (position, VoteCount(candidate_id=cid, votes=counts.get(cid, 0)))
        for position, cid in enumerate(pool)
    ]
    ranked.sort(key=lambda item: (-item[1].votes, item[0]))
    return [vc for _, vc in ranked]


def top_candidates(
    pool: Sequence[str], counts: Mapping[str, int], limit: int = SHORTLIST_SIZE,
) -> list[VoteCount]:
    """The ``limit`` highest-tallied candidates."""
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    return tally_votes(pool, counts)[:limit]


def select_shortlist(
    pool: Sequence[str],
    counts: Mapping[str, int],
    status: VotingStatus,
) -> list[str]:
    """Compute the finalists.

    Pools of five or fewer are the shortlist as-is, in pool order, whatever
    the voting state. Larger pools need quorum.

    Raises:
        QuorumNotMet: If the pool is larger than five and voting is still open.
    """
    if len(pool) <= SHORTLIST_SIZE:
        return list(pool)

    if not status.quorum_met:
        raise QuorumNotMet(status)

    ranked = tally_votes(pool, counts)
    shortlist = [vc.candidate_id for vc in ranked[:SHORTLIST_SIZE]]

    if len(ranked) > SHORTLIST_SIZE:
        cutoff = ranked[SHORTLIST_SIZE - 1].votes
        if ranked[SHORTLIST_SIZE].votes == cutoff:
            tied = [vc.candidate_id for vc in ranked if vc.votes == cutoff]
            logger.info(
                "Shortlist cutoff tie at %d votes among %s, kept by pool order",
                cutoff, tied,
            )
    return shortlist
