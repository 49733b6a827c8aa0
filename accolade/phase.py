"""Phase Resolver.

Derives which step of the workflow a user is on from ledger contents. No
phase is ever stored, so it cannot drift from the ledgers.
"""

from __future__ import annotations

from collections.abc import Mapping

from accolade.schemas.phase import Phase
from accolade.schemas.rating import CompletionState
from accolade.schemas.voting import SHORTLIST_SIZE


def resolve_phase(
    pool_size: int,
    has_completed_vote: bool,
    quorum_met: bool,
    rating_states: Mapping[str, CompletionState],
    active_candidate_id: str | None = None,
) -> Phase:
    """Derive a user's phase.

    Args:
        pool_size: Number of candidates in the period.
        has_completed_vote: Whether the user marked their vote set complete.
        quorum_met: Whether every eligible voter has completed.
        rating_states: Finalist id → the user's completion state for that
            finalist. Empty while the shortlist cannot be computed.
        active_candidate_id: Finalist the client is currently scoring, if any.
            This lives on the client; the core only interprets it.
    """
    if pool_size > SHORTLIST_SIZE:
        if not has_completed_vote:
            return Phase.SELECT
        if not quorum_met:
            return Phase.WAITING

    if rating_states and all(
        s == CompletionState.COMPLETE for s in rating_states.values()
    ):
        return Phase.DONE
    if active_candidate_id is not None and active_candidate_id in rating_states:
        return Phase.RATE
    return Phase.SHORTLIST
