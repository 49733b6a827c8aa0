"""Tests for the Phase Resolver."""

from __future__ import annotations

import pytest

from accolade.phase import resolve_phase
from accolade.schemas.phase import Phase
from accolade.schemas.rating import CompletionState

C = CompletionState.COMPLETE
D = CompletionState.DRAFT
N = CompletionState.NONE


@pytest.mark.parametrize(
    ("pool_size", "voted", "quorum", "states", "active", "expected"),
    [
        # Large pool, voting phases
        (7, False, False, {}, None, Phase.SELECT),
        (7, False, True, {}, None, Phase.SELECT),
        (7, True, False, {}, None, Phase.WAITING),
        # Large pool after quorum
        (7, True, True, {"a": N, "b": N}, None, Phase.SHORTLIST),
        (7, True, True, {"a": D, "b": N}, "a", Phase.RATE),
        (7, True, True, {"a": C, "b": C}, None, Phase.DONE),
        # Small pool skips voting entirely
        (3, False, False, {"a": N, "b": N, "c": N}, None, Phase.SHORTLIST),
        (5, False, False, {"a": C}, None, Phase.DONE),
        (3, False, False, {"a": N}, "a", Phase.RATE),
        # Empty pool
        (0, False, True, {}, None, Phase.SHORTLIST),
    ],
)
def test_resolve_phase(pool_size, voted, quorum, states, active, expected):
    assert resolve_phase(pool_size, voted, quorum, states, active) == expected


def test_done_requires_every_finalist_complete():
    assert resolve_phase(3, False, False, {"a": C, "b": D}) == Phase.SHORTLIST


def test_active_candidate_outside_shortlist_ignored():
    assert resolve_phase(3, False, False, {"a": N}, "zed") == Phase.SHORTLIST


def test_done_wins_over_active_candidate():
    assert resolve_phase(3, False, False, {"a": C}, "a") == Phase.DONE
