"""Accolade persistence layer.

Provides SQLite-backed storage for the candidate pool, the vote and
rating ledgers, period winners, and the host-side directory tables.
"""

from accolade.persistence.candidates import CandidateStore
from accolade.persistence.database import close_db, init_db, read_lock, write_transaction
from accolade.persistence.directory import PeriodStore, UserDirectory
from accolade.persistence.ratings import RatingLedger
from accolade.persistence.votes import VoteLedger
from accolade.persistence.winners import WinnerStore

__all__ = [
    "CandidateStore",
    "PeriodStore",
    "RatingLedger",
    "UserDirectory",
    "VoteLedger",
    "WinnerStore",
    "close_db",
    "init_db",
    "read_lock",
    "write_transaction",
]
