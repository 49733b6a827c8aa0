"""Period source contract and active-period derivation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol

from accolade.schemas.period import Period


class PeriodSource(Protocol):
    """Supplies the current quarterly period. Implemented by the host."""

    async def get_active_period(self) -> Period | None: ...


def pick_active(periods: Iterable[Period], today: date | None = None) -> Period | None:
    """Choose the active period from a set of known periods.

    A period explicitly flagged active wins. Otherwise the open period whose
    date range contains ``today`` is active. Newer quarters are preferred
    when several match.
    """
    today = today or date.today()
    ordered = sorted(periods, key=lambda p: (p.year, p.quarter), reverse=True)
    for p in ordered:
        if p.is_active:
            return p
    for p in ordered:
        if not p.is_completed and p.contains(today):
            return p
    return None
