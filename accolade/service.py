"""Host-facing recognition service.

Wires the Eligibility Resolver, ledgers, shortlist selector, and scoring
engine together for the active quarterly period. Every call re-reads the
ledgers; nothing here caches workflow state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import aiosqlite

from accolade.consensus.shortlist import select_shortlist, top_candidates
from accolade.eligibility.resolver import (
    DEFAULT_PRIVILEGED,
    EligibilityResolver,
    ProfileSource,
    RoleSource,
)
from accolade.errors import (
    IneligibleUser,
    NoActivePeriod,
    PeriodClosed,
    QuorumNotMet,
    VotingClosed,
)
from accolade.periods import PeriodSource
from accolade.persistence.candidates import CandidateStore
from accolade.persistence.ratings import RatingLedger, ScoreInput
from accolade.persistence.votes import VoteLedger, voting_required
from accolade.persistence.winners import WinnerStore
from accolade.phase import resolve_phase
from accolade.schemas.eligibility import Profile, Role, RoleClassification
from accolade.schemas.period import Period
from accolade.schemas.phase import Phase
from accolade.schemas.rating import (
    CompletionState,
    RaterProgress,
    RatingScores,
    RatingStatus,
)
from accolade.schemas.report import PeriodReport
from accolade.schemas.scoring import CandidateScore, WinnerDecision, WinnerRecord
from accolade.schemas.voting import SHORTLIST_SIZE, VoteCount, VotingStatus
from accolade.scoring.engine import (
    complete_candidates,
    compute_scores,
    pick_winner,
    rank_scores,
)

logger = logging.getLogger(__name__)


@dataclass
class _PeriodContext:
    period: Period
    pool: list[str]
    raters: list[str]


class RecognitionService:
    """The workflow operations the host application calls.

    Args:
        db: Connection from persistence.init_db().
        periods: Supplies the active period.
        roles: Supplies users and their roles.
        profiles: Optional display-profile lookup.
        privileged_roles: Roles excluded from both pools.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        periods: PeriodSource,
        roles: RoleSource,
        profiles: ProfileSource | None = None,
        privileged_roles: Iterable[Role] = DEFAULT_PRIVILEGED,
    ) -> None:
        self._periods = periods
        self._resolver = EligibilityResolver(roles, privileged_roles)
        self._profiles = profiles
        self._candidates = CandidateStore(db)
        self._votes = VoteLedger(db)
        self._ratings = RatingLedger(db)
        self._winners = WinnerStore(db)

    # ── Context ──────────────────────────────────────────────────

    async def active_period(self) -> Period:
        period = await self._periods.get_active_period()
        if period is None:
            raise NoActivePeriod()
        return period

    async def _context(self, *, writable: bool = False) -> _PeriodContext:
        period = await self.active_period()
        if writable and period.is_completed:
            raise PeriodClosed(period.id)

        eligible = await self._resolver.resolve_pool(period)
        stored = await self._candidates.seed(period.id, eligible.candidates)
        current = set(eligible.candidates)
        pool = [cid for cid in stored if cid in current]
        return _PeriodContext(period=period, pool=pool, raters=eligible.raters)

    @staticmethod
    def _require_rater(ctx: _PeriodContext, user_id: str) -> None:
        if user_id not in ctx.raters:
            raise IneligibleUser(user_id)

    async def _status(self, ctx: _PeriodContext) -> VotingStatus:
        return await self._votes.get_voting_status(ctx.period.id, ctx.raters)

    async def _shortlist(self, ctx: _PeriodContext) -> list[str]:
        frozen = await self._candidates.get_shortlist(ctx.period.id)
        if frozen:
            return frozen
        if not voting_required(len(ctx.pool)):
            return list(ctx.pool)
        status = await self._status(ctx)
        counts = await self._votes.tally(ctx.period.id)
        shortlist = select_shortlist(ctx.pool, counts, status)
        return await self._candidates.freeze_shortlist(ctx.period.id, shortlist)

    async def _voting_closed(self, ctx: _PeriodContext) -> bool:
        """Whether the finalists are settled and vote sets can no longer change."""
        if await self._candidates.get_shortlist(ctx.period.id):
            return True
        return voting_required(len(ctx.pool)) and (await self._status(ctx)).quorum_met

    # ── Pool ─────────────────────────────────────────────────────

    async def get_candidates(self) -> list[str]:
        """The active period's candidate pool, in pool order."""
        return (await self._context()).pool

    async def get_role_classification(self) -> RoleClassification:
        return await self._resolver.get_role_classification()

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        if self._profiles is None:
            return {}
        return await self._profiles.get_profiles(user_ids)

    # ── Voting ───────────────────────────────────────────────────

    async def submit_votes(self, voter_id: str, candidate_ids: Sequence[str]) -> list[str]:
        """Replace the voter's vote set.

        Raises:
            VotingClosed: Once quorum is met or the shortlist is frozen.
        """
        ctx = await self._context(writable=True)
        self._require_rater(ctx, voter_id)
        if await self._voting_closed(ctx):
            raise VotingClosed(ctx.period.id)
        return await self._votes.submit_votes(ctx.period.id, voter_id, candidate_ids, ctx.pool)

    async def mark_completed(self, voter_id: str) -> VotingStatus:
        """Mark the voter finished and return the updated quorum gauge.

        The completion that meets quorum also freezes the shortlist.
        """
        ctx = await self._context(writable=True)
        self._require_rater(ctx, voter_id)
        await self._votes.mark_completed(ctx.period.id, voter_id, len(ctx.pool))
        status = await self._status(ctx)
        if status.quorum_met and voting_required(len(ctx.pool)):
            await self._shortlist(ctx)
        return status

    async def get_voting_status(self) -> VotingStatus:
        return await self._status(await self._context())

    async def get_user_votes(self, voter_id: str) -> list[str]:
        period = await self.active_period()
        return await self._votes.get_user_votes(period.id, voter_id)

    # ── Shortlist ────────────────────────────────────────────────

    async def compute_shortlist(self) -> list[str]:
        """Finalists for the active period.

        Raises:
            QuorumNotMet: If the pool needs voting and voting is still open.
        """
        return await self._shortlist(await self._context())

    async def get_top_candidates(self, n: int = SHORTLIST_SIZE) -> list[VoteCount]:
        """Live vote tally, highest first. Does not wait for quorum."""
        ctx = await self._context()
        counts = await self._votes.tally(ctx.period.id)
        return top_candidates(ctx.pool, counts, n)

    # ── Rating ───────────────────────────────────────────────────

    async def submit_rating(
        self,
        rater_id: str,
        candidate_id: str,
        scores: ScoreInput,
        clear: Iterable[int] = (),
    ) -> CompletionState:
        ctx = await self._context(writable=True)
        self._require_rater(ctx, rater_id)
        shortlist = await self._shortlist(ctx)
        return await self._ratings.submit_rating(
            ctx.period.id, rater_id, candidate_id, scores, shortlist, clear,
        )

    async def get_user_rating(self, rater_id: str, candidate_id: str) -> RatingScores | None:
        period = await self.active_period()
        return await self._ratings.get_user_rating(period.id, rater_id, candidate_id)

    async def get_user_ratings_map(self, rater_id: str) -> dict[str, RatingScores]:
        period = await self.active_period()
        return await self._ratings.get_user_ratings_map(period.id, rater_id)

    async def rater_progress(self, rater_id: str) -> RaterProgress:
        ctx = await self._context()
        shortlist = await self._shortlist(ctx)
        return await self._ratings.rater_progress(ctx.period.id, rater_id, shortlist)

    async def get_rating_status(self) -> RatingStatus:
        ctx = await self._context()
        shortlist = await self._shortlist(ctx)
        return await self._ratings.get_completion_status(ctx.period.id, ctx.raters, shortlist)

    # ── Scoring ──────────────────────────────────────────────────

    async def compute_scores(self) -> list[CandidateScore]:
        """Per-finalist scores, in shortlist order."""
        ctx = await self._context()
        shortlist = await self._shortlist(ctx)
        rows = await self._ratings.ratings_for(ctx.period.id, shortlist)
        return compute_scores(shortlist, rows)

    async def leaderboard(self) -> list[CandidateScore]:
        return rank_scores(await self.compute_scores())

    async def decide_winner(self) -> WinnerDecision | None:
        ctx = await self._context()
        shortlist = await self._shortlist(ctx)
        rows = await self._ratings.ratings_for(ctx.period.id, shortlist)
        return pick_winner(compute_scores(shortlist, rows), complete_candidates(rows))

    async def compute_winner(self) -> str | None:
        """Winning candidate id, or None until a finalist has a complete rating."""
        decision = await self.decide_winner()
        return decision.winner_id if decision else None

    async def record_winner(self) -> WinnerRecord | None:
        """Recompute the winner and upsert it for the period.

        Returns None, and writes nothing, when there is no winner yet.
        """
        period = await self.active_period()
        decision = await self.decide_winner()
        if decision is None:
            logger.info("No complete ratings in %s, no winner recorded", period.id)
            return None
        return await self._winners.record(period.id, decision)

    async def get_winner(self) -> WinnerRecord | None:
        period = await self.active_period()
        return await self._winners.get(period.id)

    # ── Phase ────────────────────────────────────────────────────

    async def resolve_phase(
        self, user_id: str, active_candidate_id: str | None = None,
    ) -> Phase:
        """Where ``user_id`` is in the workflow right now."""
        ctx = await self._context()
        status = await self._status(ctx)
        has_voted = await self._votes.has_completed(ctx.period.id, user_id)
        # A frozen shortlist outlives later changes to the rater pool
        closed = bool(await self._candidates.get_shortlist(ctx.period.id))

        states: dict[str, CompletionState] = {}
        if closed or not voting_required(len(ctx.pool)) or (has_voted and status.quorum_met):
            shortlist = await self._shortlist(ctx)
            progress = await self._ratings.rater_progress(ctx.period.id, user_id, shortlist)
            states = progress.states

        return resolve_phase(
            pool_size=len(ctx.pool),
            has_completed_vote=has_voted or closed,
            quorum_met=status.quorum_met or closed,
            rating_states=states,
            active_candidate_id=active_candidate_id,
        )

    # ── Report ───────────────────────────────────────────────────

    async def build_report(self) -> PeriodReport:
        """Snapshot of the active period for export and display.

        While quorum is pending the shortlist, rating status, and
        leaderboard are left empty.
        """
        ctx = await self._context()
        status = await self._status(ctx)
        report = PeriodReport(
            period=ctx.period,
            generated_at=datetime.now(UTC),
            pool=ctx.pool,
            voting=status,
            winner=await self._winners.get(ctx.period.id),
            profiles=await self.get_profiles(ctx.pool),
        )
        try:
            shortlist = await self._shortlist(ctx)
        except QuorumNotMet:
            return report

        rows = await self._ratings.ratings_for(ctx.period.id, shortlist)
        report.shortlist = shortlist
        report.ratings = await self._ratings.get_completion_status(
            ctx.period.id, ctx.raters, shortlist,
        )
        report.leaderboard = rank_scores(compute_scores(shortlist, rows))
        return report
