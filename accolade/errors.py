"""Exception hierarchy for the recognition workflow.

Every failure here is a local precondition failure scoped to a single
request. Nothing is retried; callers decide what to do next.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from accolade.schemas.voting import VotingStatus


class AccoladeError(Exception):
    """Base exception for all application-specific errors."""


class InvalidSelection(AccoladeError):
    """Raised when a vote set has the wrong size or names a non-candidate."""

    def __init__(self, message: str, *, candidate_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.candidate_ids = candidate_ids or []


class IncompleteVoteSet(AccoladeError):
    """Raised when completion is claimed before a full vote set is stored."""

    def __init__(self, voter_id: str, recorded: int, required: int) -> None:
        super().__init__(
            f"Voter {voter_id} has {recorded} of {required} required votes recorded"
        )
        self.voter_id = voter_id
        self.recorded = recorded
        self.required = required


class QuorumNotMet(AccoladeError):
    """Raised when the shortlist is requested before every voter has finished."""

    def __init__(self, status: VotingStatus) -> None:
        super().__init__(
            f"Quorum not met: {status.completed_count} of "
            f"{status.required_count} voters have completed"
        )
        self.status = status


class InvalidRatingValue(AccoladeError):
    """Raised when one or more criterion scores fall outside [1, 5].

    ``criteria`` maps each offending criterion key, exactly as submitted,
    to the rejected value.
    """

    def __init__(self, criteria: dict[object, object]) -> None:
        detail = ", ".join(
            f"{_criterion_label(k)}={v!r}"
            for k, v in sorted(criteria.items(), key=_criterion_order)
        )
        super().__init__(f"Invalid rating values: {detail}")
        self.criteria = criteria


def _criterion_label(key: object) -> str:
    return f"c{key}" if isinstance(key, int) else repr(key)


def _criterion_order(item: tuple[object, object]) -> tuple[bool, int, str]:
    # Numbered criteria first in numeric order, then anything else by repr
    key = item[0]
    if isinstance(key, int):
        return (False, key, "")
    return (True, 0, repr(key))


class NotInShortlist(AccoladeError):
    """Raised when a rating targets a candidate outside the shortlist."""

    def __init__(self, candidate_id: str) -> None:
        super().__init__(f"Candidate {candidate_id} is not on the shortlist")
        self.candidate_id = candidate_id


class NoActivePeriod(AccoladeError):
    """Raised when an operation runs while no quarterly period is active."""

    def __init__(self) -> None:
        super().__init__("No active quarterly period")


class PeriodClosed(AccoladeError):
    """Raised when a write targets a period that has been completed."""

    def __init__(self, period_id: str) -> None:
        super().__init__(f"Period {period_id} is completed and read-only")
        self.period_id = period_id


class RoleSourceUnavailable(AccoladeError):
    """Raised by a role source that cannot answer right now."""


class ConfigError(AccoladeError):
    """Raised when the configuration file holds invalid values."""


class IneligibleUser(AccoladeError):
    """Raised when a user outside the rater pool tries to vote or rate."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} is not an eligible voter or rater")
        self.user_id = user_id


class VotingClosed(AccoladeError):
    """Raised when a vote set is submitted after the shortlist is settled."""

    def __init__(self, period_id: str) -> None:
        super().__init__(f"Voting in period {period_id} is closed")
        self.period_id = period_id
