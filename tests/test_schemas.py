"""Tests for the Pydantic schemas.

Covers period construction, completion classification, quorum and tie
properties, and field bounds.
"""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from accolade.schemas import (
    CRITERIA,
    NUM_CRITERIA,
    SHORTLIST_SIZE,
    CandidateScore,
    CompletionState,
    EligiblePool,
    Phase,
    RaterProgress,
    RatingRow,
    Role,
    RoleClassification,
    VotingStatus,
    WinnerDecision,
)
from accolade.schemas.period import Period, period_id, quarter_of
from accolade.schemas.rating import completion_of

# ── Period ───────────────────────────────────────────────────────


def test_period_id_format():
    assert period_id(2025, 3) == "2025-Q3"


@pytest.mark.parametrize(
    ("day", "quarter"),
    [(date(2025, 1, 1), 1), (date(2025, 3, 31), 1), (date(2025, 4, 1), 2), (date(2025, 12, 31), 4)],
)
def test_quarter_of(day, quarter):
    assert quarter_of(day) == quarter


def test_for_quarter_spans_full_quarter():
    p = Period.for_quarter(2024, 1)
    assert p.id == "2024-Q1"
    assert p.start_date == date(2024, 1, 1)
    assert p.end_date == date(2024, 3, 31)
    assert not p.is_active
    assert not p.is_completed


def test_for_quarter_rejects_bad_quarter():
    with pytest.raises(ValueError):
        Period.for_quarter(2024, 5)


def test_period_rejects_inverted_range():
    with pytest.raises(ValidationError):
        Period(
            id="2025-Q1", year=2025, quarter=1,
            start_date=date(2025, 3, 31), end_date=date(2025, 1, 1),
        )


def test_period_contains_bounds():
    p = Period.for_quarter(2025, 2)
    assert p.contains(date(2025, 4, 1))
    assert p.contains(date(2025, 6, 30))
    assert not p.contains(date(2025, 7, 1))


# ── Eligibility ──────────────────────────────────────────────────


def test_role_values():
    assert {r.value for r in Role} == {"admin", "supervisor", "regular"}


def test_role_classification_restricted():
    rc = RoleClassification(admin_ids=["a"], supervisor_ids=["s", "a"])
    assert rc.restricted == {"a", "s"}


def test_eligible_pool_defaults_empty():
    pool = EligiblePool()
    assert pool.candidates == []
    assert pool.raters == []


# ── Voting ───────────────────────────────────────────────────────


def test_shortlist_size():
    assert SHORTLIST_SIZE == 5


def test_quorum_met_when_all_completed():
    assert VotingStatus(required_count=3, completed_count=3).quorum_met


def test_quorum_not_met_when_short():
    assert not VotingStatus(required_count=3, completed_count=2).quorum_met


def test_quorum_met_with_empty_rater_pool():
    assert VotingStatus(required_count=0, completed_count=0).quorum_met


# ── Rating ───────────────────────────────────────────────────────


def test_thirteen_criteria():
    assert NUM_CRITERIA == 13
    assert len(CRITERIA) == 13


@pytest.mark.parametrize(
    ("scores", "state"),
    [
        (None, CompletionState.NONE),
        ([None] * 13, CompletionState.NONE),
        ([5] + [None] * 12, CompletionState.DRAFT),
        ([3] * 12 + [None], CompletionState.DRAFT),
        ([1] * 13, CompletionState.COMPLETE),
    ],
)
def test_completion_of(scores, state):
    assert completion_of(scores) == state


def test_rating_row_total_skips_unset():
    row = RatingRow(
        period_id="2025-Q1", rater_id="r", candidate_id="c",
        scores=[5, None, 3] + [None] * 10,
    )
    assert row.total == 8
    assert row.state == CompletionState.DRAFT


def test_rating_row_requires_thirteen_scores():
    with pytest.raises(ValidationError):
        RatingRow(period_id="2025-Q1", rater_id="r", candidate_id="c", scores=[5] * 12)


def test_rater_progress_all_done():
    done = RaterProgress(
        rater_id="r",
        states={"a": CompletionState.COMPLETE, "b": CompletionState.COMPLETE},
    )
    assert done.all_done


def test_rater_progress_not_done_with_draft():
    progress = RaterProgress(
        rater_id="r",
        states={"a": CompletionState.COMPLETE, "b": CompletionState.DRAFT},
    )
    assert not progress.all_done


def test_rater_progress_empty_is_not_done():
    assert not RaterProgress(rater_id="r").all_done


# ── Scoring ──────────────────────────────────────────────────────


def test_candidate_score_percent_bounds():
    with pytest.raises(ValidationError):
        CandidateScore(candidate_id="a", score_percent=100.5)
    with pytest.raises(ValidationError):
        CandidateScore(candidate_id="a", score_percent=-1)


def test_winner_decision_tie_flag():
    unique = WinnerDecision(winner_id="a", total_score=10, num_raters=1)
    tied = WinnerDecision(
        winner_id="a", total_score=10, num_raters=1, tied_candidates=["a", "b"],
    )
    assert not unique.is_tie
    assert tied.is_tie


# ── Phase ────────────────────────────────────────────────────────


def test_phase_values():
    assert [p.value for p in Phase] == ["select", "waiting", "shortlist", "rate", "done"]
