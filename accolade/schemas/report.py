"""Period report: the read-only result view handed to the host."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from accolade.schemas.eligibility import Profile
from accolade.schemas.period import Period
from accolade.schemas.rating import RatingStatus
from accolade.schemas.scoring import CandidateScore, WinnerRecord
from accolade.schemas.voting import VotingStatus


class PeriodReport(BaseModel):
    """Snapshot of a period's selection and scoring state."""

    period: Period
    generated_at: datetime
    pool: list[str] = Field(default_factory=list, description="Candidate pool, pool order")
    voting: VotingStatus
    shortlist: list[str] = Field(
        default_factory=list, description="Finalists; empty while quorum is pending",
    )
    ratings: RatingStatus | None = None
    leaderboard: list[CandidateScore] = Field(default_factory=list)
    winner: WinnerRecord | None = None
    profiles: dict[str, Profile] = Field(default_factory=dict)

    def display_name(self, user_id: str) -> str:
        profile = self.profiles.get(user_id)
        return profile.full_name if profile and profile.full_name else user_id
