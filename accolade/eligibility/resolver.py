"""Eligibility Resolver.

Turns the host's role assignments into the candidate and rater pools for a
period. Roles can change between calls, so nothing here is cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from accolade.errors import RoleSourceUnavailable
from accolade.schemas.eligibility import (
    EligiblePool,
    Profile,
    Role,
    RoleClassification,
)
from accolade.schemas.period import Period

logger = logging.getLogger(__name__)

DEFAULT_PRIVILEGED: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPERVISOR})


class RoleSource(Protocol):
    """Host-side user directory with role lookup."""

    async def list_users(self) -> list[str]:
        """All known user ids, in join order."""
        ...

    async def classify(self, user_id: str) -> Role: ...


class ProfileSource(Protocol):
    """Host-side profile lookup, for display only."""

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]: ...


class EligibilityResolver:
    """Computes who may be nominated and who may vote and rate.

    Candidates are every user whose role is not privileged; raters are the
    same set, so raters may rate themselves.
    """

    def __init__(
        self,
        role_source: RoleSource,
        privileged_roles: Iterable[Role] = DEFAULT_PRIVILEGED,
    ) -> None:
        self._roles = role_source
        self._privileged = frozenset(privileged_roles)

    async def resolve_pool(self, period: Period) -> EligiblePool:
        """Return the candidate and rater pools for ``period``.

        Fails closed: when the role source is unavailable both pools are
        empty.
        """
        try:
            eligible = await self._eligible_users()
        except RoleSourceUnavailable as e:
            logger.warning(
                "Role source unavailable for %s, using empty pools: %s", period.id, e,
            )
            return EligiblePool()
        return EligiblePool(candidates=list(eligible), raters=list(eligible))

    async def get_role_classification(self) -> RoleClassification:
        """Return admin and supervisor ids. Propagates RoleSourceUnavailable."""
        classification = RoleClassification()
        for user_id in await self._roles.list_users():
            role = await self._roles.classify(user_id)
            if role == Role.ADMIN:
                classification.admin_ids.append(user_id)
            elif role == Role.SUPERVISOR:
                classification.supervisor_ids.append(user_id)
        return classification

    async def _eligible_users(self) -> list[str]:
        eligible: list[str] = []
        seen: set[str] = set()
        for user_id in await self._roles.list_users():
            if user_id in seen:
                continue
            seen.add(user_id)
            if await self._roles.classify(user_id) not in self._privileged:
                eligible.append(user_id)
        return eligible
