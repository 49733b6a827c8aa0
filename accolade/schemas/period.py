"""Quarterly period schema.

A period identifies one quarter. It is created by an external scheduler
and becomes read-only once completed.
"""

from __future__ import annotations

import calendar
from datetime import date

from pydantic import BaseModel, Field, model_validator


def period_id(year: int, quarter: int) -> str:
    """Build the canonical period key, e.g. ``2025-Q3``."""
    return f"{year}-Q{quarter}"


def quarter_of(day: date) -> int:
    """Return the quarter number (1-4) that contains ``day``."""
    return (day.month - 1) // 3 + 1


class Period(BaseModel):
    """One quarterly recognition window."""

    id: str = Field(description="Period key in the form <year>-Q<quarter>")
    year: int = Field(ge=1970, description="Calendar year")
    quarter: int = Field(ge=1, le=4, description="Quarter number (1-4)")
    start_date: date = Field(description="First day of the period")
    end_date: date = Field(description="Last day of the period")
    is_active: bool = Field(default=False, description="Whether this is the running period")
    is_completed: bool = Field(
        default=False, description="Whether the period is closed and read-only",
    )

    @model_validator(mode="after")
    def _check_range(self) -> Period:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    @classmethod
    def for_quarter(
        cls,
        year: int,
        quarter: int,
        *,
        is_active: bool = False,
        is_completed: bool = False,
    ) -> Period:
        """Build a period spanning the full calendar quarter."""
        if not 1 <= quarter <= 4:
            raise ValueError(f"quarter must be between 1 and 4, got {quarter}")
        first_month = (quarter - 1) * 3 + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(year, last_month)[1]
        return cls(
            id=period_id(year, quarter),
            year=year,
            quarter=quarter,
            start_date=date(year, first_month, 1),
            end_date=date(year, last_month, last_day),
            is_active=is_active,
            is_completed=is_completed,
        )

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
