"""Voting-phase schemas: quorum gauge and vote tallies."""

from __future__ import annotations

from pydantic import BaseModel, Field

# Finalists per period, and picks per voter when the pool is larger
SHORTLIST_SIZE = 5


class VotingStatus(BaseModel):
    """Quorum progress for a period.

    Callers poll this; it never blocks.
    """

    required_count: int = Field(ge=0, description="Size of the rater pool")
    completed_count: int = Field(ge=0, description="Voters who marked their vote set complete")
    completed_user_ids: list[str] = Field(
        default_factory=list, description="Voters who marked their vote set complete",
    )

    @property
    def quorum_met(self) -> bool:
        return self.completed_count >= self.required_count


class VoteCount(BaseModel):
    """Number of votes a candidate received."""

    candidate_id: str
    votes: int = Field(ge=0)
