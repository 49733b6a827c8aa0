"""Per-user workflow phase."""

from __future__ import annotations

from enum import StrEnum


class Phase(StrEnum):
    """Where a user currently is in the selection workflow.

    Always derived from ledger contents, never stored.
    """

    SELECT = "select"
    WAITING = "waiting"
    SHORTLIST = "shortlist"
    RATE = "rate"
    DONE = "done"
