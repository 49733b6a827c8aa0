"""Finalist scoring and winner selection."""

from accolade.scoring.engine import (
    compute_scores,
    pick_winner,
    rank_scores,
    score_percent,
)

__all__ = ["compute_scores", "pick_winner", "rank_scores", "score_percent"]
