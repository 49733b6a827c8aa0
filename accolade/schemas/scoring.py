"""Scoring schemas: per-candidate aggregates and the period winner."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CandidateScore(BaseModel):
    """Aggregate of every rating a finalist received."""

    candidate_id: str
    total_score: int = Field(default=0, ge=0, description="Sum of all filled criteria")
    num_raters: int = Field(default=0, ge=0, description="Distinct raters with any score")
    score_percent: float = Field(
        default=0.0, ge=0.0, le=100.0,
        description="total_score as a percentage of num_raters × 13 × 5",
    )


class WinnerDecision(BaseModel):
    """Outcome of winner selection, before it is persisted."""

    winner_id: str
    total_score: int = Field(ge=0)
    num_raters: int = Field(ge=0)
    tied_candidates: list[str] = Field(
        default_factory=list,
        description="Every candidate sharing the top total (empty when unique)",
    )

    @property
    def is_tie(self) -> bool:
        return len(self.tied_candidates) > 1


class WinnerRecord(WinnerDecision):
    """Persisted winner for a period."""

    period_id: str
    recorded_at: datetime
