"""Candidate and rater eligibility."""

from accolade.eligibility.resolver import (
    EligibilityResolver,
    ProfileSource,
    RoleSource,
)

__all__ = ["EligibilityResolver", "ProfileSource", "RoleSource"]
