"""Rating schemas: the 13-criterion rubric and completion bookkeeping."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# Rubric questions, in the order raters answer them.
CRITERIA: tuple[str, ...] = (
    "Brings creative ideas into day-to-day work",
    "Finishes work completely and often exceeds targets",
    "Committed to attendance and working-hour rules",
    "Sets an example in carrying out responsibilities",
    "Inspires colleagues",
    "Trustworthy in carrying out duties",
    "Works well in a team, responsive and solution-oriented",
    "Delivers useful innovations",
    "Achievements with a positive impact on the organization",
    "Builds a healthy working environment",
    "Shows loyalty to the organization",
    "Adapts to change",
    "Has a positive influence on others",
)

NUM_CRITERIA = len(CRITERIA)
MIN_SCORE = 1
MAX_SCORE = 5

# Ordered criterion scores; None marks an unset criterion.
RatingScores = list[int | None]


class CompletionState(StrEnum):
    """How many criteria a rating row has filled in."""

    NONE = "none"
    DRAFT = "draft"
    COMPLETE = "complete"


def completion_of(scores: RatingScores | None) -> CompletionState:
    """Classify a score vector as none, draft, or complete."""
    filled = sum(1 for s in scores or () if s is not None)
    if filled == 0:
        return CompletionState.NONE
    if filled < NUM_CRITERIA:
        return CompletionState.DRAFT
    return CompletionState.COMPLETE


class RatingRow(BaseModel):
    """One stored rating: a rater's scores for one candidate."""

    period_id: str
    rater_id: str
    candidate_id: str
    scores: RatingScores = Field(
        default_factory=lambda: [None] * NUM_CRITERIA,
        min_length=NUM_CRITERIA,
        max_length=NUM_CRITERIA,
    )
    updated_at: datetime | None = None

    @property
    def state(self) -> CompletionState:
        return completion_of(self.scores)

    @property
    def total(self) -> int:
        return sum(s for s in self.scores if s is not None)


class RaterProgress(BaseModel):
    """A rater's completion state for every finalist."""

    rater_id: str
    states: dict[str, CompletionState] = Field(
        default_factory=dict, description="Candidate id → completion state, shortlist order",
    )

    @property
    def all_done(self) -> bool:
        return bool(self.states) and all(
            s == CompletionState.COMPLETE for s in self.states.values()
        )


class RatingStatus(BaseModel):
    """How many raters have finished rating every finalist."""

    required_count: int = Field(ge=0, description="Size of the rater pool")
    completed_count: int = Field(ge=0, description="Raters done with every finalist")
    completed_user_ids: list[str] = Field(default_factory=list)
