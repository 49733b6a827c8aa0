"""Pydantic schemas for periods, eligibility, voting, rating, and scoring."""

from accolade.schemas.eligibility import (
    EligiblePool,
    Profile,
    Role,
    RoleClassification,
)
from accolade.schemas.period import Period, period_id, quarter_of
from accolade.schemas.phase import Phase
from accolade.schemas.rating import (
    CRITERIA,
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
from accolade.schemas.report import PeriodReport
from accolade.schemas.scoring import CandidateScore, WinnerDecision, WinnerRecord
from accolade.schemas.voting import SHORTLIST_SIZE, VoteCount, VotingStatus

__all__ = [
    "CRITERIA",
    "MAX_SCORE",
    "MIN_SCORE",
    "NUM_CRITERIA",
    "SHORTLIST_SIZE",
    "CandidateScore",
    "CompletionState",
    "EligiblePool",
    "Period",
    "Phase",
    "PeriodReport",
    "Profile",
    "RaterProgress",
    "RatingRow",
    "RatingScores",
    "RatingStatus",
    "Role",
    "RoleClassification",
    "VoteCount",
    "VotingStatus",
    "WinnerDecision",
    "WinnerRecord",
    "completion_of",
    "period_id",
    "quarter_of",
]
