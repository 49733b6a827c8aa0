"""Accolade: best-employee-of-the-quarter selection and scoring."""

__version__ = "0.1.0"

from .errors import (
    AccoladeError,
    IncompleteVoteSet,
    IneligibleUser,
    InvalidRatingValue,
    InvalidSelection,
    NoActivePeriod,
    NotInShortlist,
    PeriodClosed,
    QuorumNotMet,
    VotingClosed,
)
from .service import RecognitionService

__all__ = [
    "AccoladeError",
    "IncompleteVoteSet",
    "IneligibleUser",
    "InvalidRatingValue",
    "InvalidSelection",
    "NoActivePeriod",
    "NotInShortlist",
    "PeriodClosed",
    "QuorumNotMet",
    "RecognitionService",
    "VotingClosed",
]
