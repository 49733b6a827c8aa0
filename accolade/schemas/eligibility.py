"""Eligibility schemas: roles, role classification, pools, profiles."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class Role(StrEnum):
    """Role a user holds in the host application."""

    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    REGULAR = "regular"


class RoleClassification(BaseModel):
    """Privileged user ids, as reported by the host application."""

    admin_ids: list[str] = Field(default_factory=list)
    supervisor_ids: list[str] = Field(default_factory=list)

    @property
    def restricted(self) -> set[str]:
        return set(self.admin_ids) | set(self.supervisor_ids)


class EligiblePool(BaseModel):
    """Candidate and rater pools for one period.

    Both lists keep the order in which the role source listed the users.
    """

    candidates: list[str] = Field(default_factory=list, description="Candidate user ids")
    raters: list[str] = Field(default_factory=list, description="Voter/rater user ids")


class Profile(BaseModel):
    """Displayable identity info. Never used in any computation."""

    user_id: str
    full_name: str = ""
    department: str = ""
    position: str = ""
    avatar_url: str | None = None
