"""Tests for RecognitionService: the full selection and scoring workflow.

Runs end-to-end scenarios against a real SQLite file: large pools gated
by quorum, small pools that skip voting, rating merges, scoring, winner
recording, phase derivation, and the error cases hosts must handle.
"""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from accolade import (
    IneligibleUser,
    InvalidSelection,
    NoActivePeriod,
    NotInShortlist,
    PeriodClosed,
    QuorumNotMet,
    RecognitionService,
    VotingClosed,
)
from accolade.errors import IncompleteVoteSet, RoleSourceUnavailable
from accolade.persistence.database import close_db, init_db
from accolade.persistence.directory import PeriodStore, UserDirectory
from accolade.schemas.eligibility import Profile, Role
from accolade.schemas.period import Period
from accolade.schemas.phase import Phase
from accolade.schemas.rating import CompletionState

SEVEN = [f"u{i}" for i in range(1, 8)]

# Seven voters, five picks each. Tally: u1=7, u2=6, u3=6, u4=6, u5=5, u6=3, u7=2
SEVEN_BALLOTS = {
    "u1": ["u1", "u2", "u3", "u4", "u5"],
    "u2": ["u1", "u2", "u3", "u4", "u6"],
    "u3": ["u1", "u2", "u3", "u5", "u6"],
    "u4": ["u1", "u2", "u4", "u5", "u7"],
    "u5": ["u1", "u3", "u4", "u5", "u6"],
    "u6": ["u1", "u2", "u3", "u4", "u5"],
    "u7": ["u1", "u2", "u3", "u4", "u7"],
}


# ── Factories ──────────────────────────────────────────────────────


async def _make_service(
    tmp_path,
    users: list[str],
    *,
    admins: tuple[str, ...] = ("boss",),
    period: Period | None = None,
    today: date | None = None,
) -> tuple:
    db = await init_db(str(tmp_path / "accolade.db"))
    directory = UserDirectory(db)
    for uid in admins:
        await directory.add_user(Profile(user_id=uid, full_name=uid.title()), Role.ADMIN)
    for uid in users:
        await directory.add_user(Profile(user_id=uid, full_name=uid.title()))
    periods = PeriodStore(db, today=today)
    if period is not None:
        await periods.save_period(period)
    service = RecognitionService(db, periods=periods, roles=directory, profiles=directory)
    return db, service, directory, periods


def _active() -> Period:
    return Period.for_quarter(2025, 3, is_active=True)


async def _vote_all(service: RecognitionService, ballots: dict[str, list[str]]) -> None:
    for voter, picks in ballots.items():
        await service.submit_votes(voter, picks)
        await service.mark_completed(voter)


class _FlakyRoles:
    """Role source that can be switched off."""

    def __init__(self, inner: UserDirectory) -> None:
        self.inner = inner
        self.down = False

    async def list_users(self) -> list[str]:
        if self.down:
            raise RoleSourceUnavailable("directory offline")
        return await self.inner.list_users()

    async def classify(self, user_id: str) -> Role:
        return await self.inner.classify(user_id)


# ── Candidate Pool ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_pool_excludes_privileged_users(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["ann", "bob"], period=_active())
    assert await service.get_candidates() == ["ann", "bob"]
    rc = await service.get_role_classification()
    assert rc.admin_ids == ["boss"]
    await close_db(db)


@pytest.mark.asyncio
async def test_pool_drops_user_who_gains_privilege(tmp_path):
    db, service, directory, _ = await _make_service(tmp_path, SEVEN, period=_active())
    assert len(await service.get_candidates()) == 7

    await directory.set_role("u7", Role.SUPERVISOR)
    assert await service.get_candidates() == SEVEN[:6]
    status = await service.get_voting_status()
    assert status.required_count == 6
    await close_db(db)


@pytest.mark.asyncio
async def test_pool_order_fixed_once_seeded(tmp_path):
    db, service, directory, _ = await _make_service(tmp_path, ["ann", "bob"], period=_active())
    await service.get_candidates()
    await directory.add_user(Profile(user_id="cat"))
    # Late joiners are not added to a seeded pool
    assert await service.get_candidates() == ["ann", "bob"]
    await close_db(db)


@pytest.mark.asyncio
async def test_role_source_outage_fails_closed(tmp_path):
    db, _, directory, periods = await _make_service(tmp_path, SEVEN, period=_active())
    roles = _FlakyRoles(directory)
    service = RecognitionService(db, periods=periods, roles=roles)
    assert len(await service.get_candidates()) == 7

    roles.down = True
    assert await service.get_candidates() == []
    with pytest.raises(IneligibleUser):
        await service.submit_votes("u1", SEVEN[:5])
    await close_db(db)


@pytest.mark.asyncio
async def test_profiles_without_source(tmp_path):
    db, _, directory, periods = await _make_service(tmp_path, ["ann"], period=_active())
    service = RecognitionService(db, periods=periods, roles=directory)
    assert await service.get_profiles(["ann"]) == {}
    await close_db(db)


# ── Seven Candidates, Seven Raters ───────────────────────────────


@pytest.mark.asyncio
async def test_seven_pool_quorum_gates_shortlist(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())

    ballots = list(SEVEN_BALLOTS.items())
    await _vote_all(service, dict(ballots[:6]))
    with pytest.raises(QuorumNotMet) as exc_info:
        await service.compute_shortlist()
    assert exc_info.value.status.completed_count == 6
    assert exc_info.value.status.required_count == 7

    await _vote_all(service, dict(ballots[6:]))
    status = await service.get_voting_status()
    assert status.quorum_met
    assert await service.compute_shortlist() == ["u1", "u2", "u3", "u4", "u5"]
    await close_db(db)


@pytest.mark.asyncio
async def test_seven_pool_phases(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    assert await service.resolve_phase("u1") == Phase.SELECT

    await _vote_all(service, {"u1": SEVEN_BALLOTS["u1"]})
    assert await service.resolve_phase("u1") == Phase.WAITING
    assert await service.resolve_phase("u2") == Phase.SELECT

    await _vote_all(service, {k: v for k, v in SEVEN_BALLOTS.items() if k != "u1"})
    assert await service.resolve_phase("u1") == Phase.SHORTLIST
    assert await service.resolve_phase("u1", active_candidate_id="u3") == Phase.RATE

    for cid in await service.compute_shortlist():
        await service.submit_rating("u1", cid, [4] * 13)
    assert await service.resolve_phase("u1") == Phase.DONE
    assert await service.resolve_phase("u2") == Phase.SHORTLIST
    await close_db(db)


@pytest.mark.asyncio
async def test_quorum_ignores_voter_who_left_pool(tmp_path):
    db, service, directory, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await _vote_all(service, {"u7": SEVEN_BALLOTS["u7"]})
    await directory.set_role("u7", Role.SUPERVISOR)

    # u7 is no longer a candidate, so no ballot may name them
    await _vote_all(service, {
        "u1": ["u1", "u2", "u3", "u4", "u5"],
        "u2": ["u1", "u2", "u3", "u4", "u6"],
        "u3": ["u1", "u2", "u3", "u5", "u6"],
        "u4": ["u1", "u2", "u4", "u5", "u6"],
        "u5": ["u1", "u3", "u4", "u5", "u6"],
    })

    status = await service.get_voting_status()
    assert status.required_count == 6
    assert status.completed_count == 5
    assert "u7" not in status.completed_user_ids
    assert not status.quorum_met
    with pytest.raises(QuorumNotMet):
        await service.compute_shortlist()
    assert await service.resolve_phase("u6") == Phase.SELECT
    assert await service.resolve_phase("u1") == Phase.WAITING

    await _vote_all(service, {"u6": ["u2", "u3", "u4", "u5", "u6"]})
    assert (await service.get_voting_status()).quorum_met
    assert await service.compute_shortlist() == ["u1", "u2", "u3", "u4", "u5"]
    await close_db(db)


@pytest.mark.asyncio
async def test_votes_rejected_once_quorum_met(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await _vote_all(service, SEVEN_BALLOTS)

    with pytest.raises(VotingClosed):
        await service.submit_votes("u2", ["u2", "u3", "u4", "u6", "u7"])
    assert await service.get_user_votes("u2") == SEVEN_BALLOTS["u2"]
    await close_db(db)


@pytest.mark.asyncio
async def test_shortlist_fixed_after_rating_starts(tmp_path):
    db, service, directory, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await _vote_all(service, SEVEN_BALLOTS)
    finalists = await service.compute_shortlist()
    for cid in finalists:
        await service.submit_rating("u1", cid, [4] * 13)
    assert await service.resolve_phase("u1") == Phase.DONE

    # A late joiner reopens quorum but neither voting nor the finalists
    await directory.add_user(Profile(user_id="u8", full_name="U8"))
    assert not (await service.get_voting_status()).quorum_met
    with pytest.raises(VotingClosed):
        await service.submit_votes("u8", ["u3", "u4", "u5", "u6", "u7"])

    assert await service.compute_shortlist() == finalists
    assert await service.resolve_phase("u1") == Phase.DONE
    assert await service.resolve_phase("u8") == Phase.SHORTLIST
    state = await service.submit_rating("u8", "u5", [3] * 13)
    assert state == CompletionState.COMPLETE
    await close_db(db)


@pytest.mark.asyncio
async def test_late_joiner_does_not_reopen_voting(tmp_path):
    db, service, directory, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await _vote_all(service, SEVEN_BALLOTS)
    await directory.add_user(Profile(user_id="u8", full_name="U8"))

    with pytest.raises(VotingClosed):
        await service.submit_votes("u2", ["u2", "u3", "u4", "u6", "u7"])
    assert await service.compute_shortlist() == ["u1", "u2", "u3", "u4", "u5"]
    await close_db(db)


@pytest.mark.asyncio
async def test_rating_before_quorum_rejected(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    with pytest.raises(QuorumNotMet):
        await service.submit_rating("u1", "u1", [5] * 13)
    await close_db(db)


@pytest.mark.asyncio
async def test_eliminated_candidate_cannot_be_rated(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await _vote_all(service, SEVEN_BALLOTS)
    with pytest.raises(NotInShortlist):
        await service.submit_rating("u1", "u7", [5] * 13)
    await close_db(db)


@pytest.mark.asyncio
async def test_vote_set_must_be_five(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    with pytest.raises(InvalidSelection):
        await service.submit_votes("u1", SEVEN[:4])
    with pytest.raises(IncompleteVoteSet):
        await service.mark_completed("u1")
    await close_db(db)


@pytest.mark.asyncio
async def test_user_votes_round_trip(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await service.submit_votes("u2", ["u7", "u1", "u3", "u5", "u2"])
    assert await service.get_user_votes("u2") == ["u1", "u2", "u3", "u5", "u7"]
    await close_db(db)


@pytest.mark.asyncio
async def test_top_candidates_live(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    await service.submit_votes("u1", ["u3", "u4", "u5", "u6", "u7"])
    top = await service.get_top_candidates(3)
    assert [vc.candidate_id for vc in top] == ["u3", "u4", "u5"]
    assert all(vc.votes == 1 for vc in top)
    await close_db(db)


# ── Small Pool ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_pool_of_three_skips_voting(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b", "c"], period=_active())
    assert await service.compute_shortlist() == ["a", "b", "c"]
    assert await service.resolve_phase("a") == Phase.SHORTLIST

    state = await service.submit_rating("a", "b", [5] * 13)
    assert state == CompletionState.COMPLETE
    await close_db(db)


@pytest.mark.asyncio
async def test_empty_pool(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, [], period=_active())
    assert await service.get_candidates() == []
    assert await service.compute_shortlist() == []
    assert await service.compute_scores() == []
    assert await service.compute_winner() is None
    await close_db(db)


# ── Rating ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_partial_rating_merge(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    assert await service.submit_rating("a", "b", {1: 5}) == CompletionState.DRAFT
    await service.submit_rating("a", "b", {2: 3})
    stored = await service.get_user_rating("a", "b")
    assert stored[:3] == [5, 3, None]

    progress = await service.rater_progress("a")
    assert progress.states == {"a": CompletionState.NONE, "b": CompletionState.DRAFT}
    await close_db(db)


@pytest.mark.asyncio
async def test_clearing_criterion_reverts_to_draft(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "b", [5] * 13)
    state = await service.submit_rating("a", "b", {}, clear=[13])
    assert state == CompletionState.DRAFT
    await close_db(db)


@pytest.mark.asyncio
async def test_concurrent_partial_ratings(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await asyncio.gather(
        service.submit_rating("a", "b", {1: 5}),
        service.submit_rating("a", "b", {2: 3}),
    )
    stored = await service.get_user_rating("a", "b")
    assert stored[:2] == [5, 3]
    await close_db(db)


@pytest.mark.asyncio
async def test_rating_status(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    for cid in ("a", "b"):
        await service.submit_rating("a", cid, [3] * 13)
    await service.submit_rating("b", "a", [3] * 13)

    status = await service.get_rating_status()
    assert status.required_count == 2
    assert status.completed_user_ids == ["a"]
    ratings = await service.get_user_ratings_map("a")
    assert set(ratings) == {"a", "b"}
    await close_db(db)


# ── Scoring and Winner ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_full_marks_and_no_ratings(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "a", [5] * 13)

    scores = {s.candidate_id: s for s in await service.compute_scores()}
    assert scores["a"].score_percent == 100.0
    assert scores["b"].score_percent == 0.0
    assert await service.compute_winner() == "a"
    await close_db(db)


@pytest.mark.asyncio
async def test_two_raters_percent(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["r1", "r2", "x"], period=_active())
    await service.submit_rating("r1", "x", [4] + [3] * 12)
    await service.submit_rating("r2", "x", [4] * 11 + [3, 3])

    score = next(s for s in await service.compute_scores() if s.candidate_id == "x")
    assert score.total_score == 90
    assert score.num_raters == 2
    assert score.score_percent == pytest.approx(69.23, abs=0.01)
    await close_db(db)


@pytest.mark.asyncio
async def test_leaderboard_order(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b", "c"], period=_active())
    await service.submit_rating("a", "c", [5] * 13)
    await service.submit_rating("a", "b", [2] * 13)
    board = await service.leaderboard()
    assert [s.candidate_id for s in board] == ["c", "b", "a"]
    await close_db(db)


@pytest.mark.asyncio
async def test_no_winner_until_complete_rating(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "b", {1: 5})
    assert await service.compute_winner() is None
    assert await service.record_winner() is None
    assert await service.get_winner() is None
    await close_db(db)


@pytest.mark.asyncio
async def test_winner_tie_recorded(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "a", [4] * 13)
    await service.submit_rating("a", "b", [4] * 13)

    record = await service.record_winner()
    assert record.winner_id == "a"
    assert record.tied_candidates == ["a", "b"]
    assert await service.get_winner() == record
    await close_db(db)


@pytest.mark.asyncio
async def test_record_winner_recomputes(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "a", [5] * 13)
    assert (await service.record_winner()).winner_id == "a"

    await service.submit_rating("a", "b", [5] * 13)
    await service.submit_rating("b", "b", [1] * 13)
    record = await service.record_winner()
    assert record.winner_id == "b"
    assert (await service.get_winner()).winner_id == "b"
    await close_db(db)


# ── Period and Eligibility Errors ────────────────────────────────


@pytest.mark.asyncio
async def test_no_active_period(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a"], today=date(2030, 1, 1))
    with pytest.raises(NoActivePeriod):
        await service.get_candidates()
    with pytest.raises(NoActivePeriod):
        await service.submit_votes("a", ["a"])
    await close_db(db)


@pytest.mark.asyncio
async def test_completed_period_is_read_only(tmp_path):
    db, service, _, periods = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "a", [5] * 13)
    await periods.complete("2025-Q3")

    with pytest.raises(PeriodClosed):
        await service.submit_rating("a", "b", [5] * 13)
    with pytest.raises(PeriodClosed):
        await service.submit_votes("a", ["a"])
    with pytest.raises(PeriodClosed):
        await service.mark_completed("a")
    assert await service.compute_winner() == "a"
    await close_db(db)


@pytest.mark.asyncio
async def test_admin_cannot_vote_or_rate(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    with pytest.raises(IneligibleUser):
        await service.submit_votes("boss", ["a"])
    with pytest.raises(IneligibleUser):
        await service.submit_rating("boss", "a", [5] * 13)
    await close_db(db)


# ── Report ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_report_before_quorum(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, SEVEN, period=_active())
    report = await service.build_report()
    assert report.pool == SEVEN
    assert report.shortlist == []
    assert report.ratings is None
    assert report.leaderboard == []
    assert not report.voting.quorum_met
    await close_db(db)


@pytest.mark.asyncio
async def test_report_after_rating(tmp_path):
    db, service, _, _ = await _make_service(tmp_path, ["a", "b"], period=_active())
    await service.submit_rating("a", "b", [5] * 13)
    await service.record_winner()

    report = await service.build_report()
    assert report.shortlist == ["a", "b"]
    assert report.leaderboard[0].candidate_id == "b"
    assert report.winner.winner_id == "b"
    assert report.display_name("b") == "B"
    await close_db(db)
