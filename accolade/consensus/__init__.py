"""Vote tallying and shortlist selection."""

from accolade.consensus.shortlist import select_shortlist, tally_votes, top_candidates

__all__ = ["select_shortlist", "tally_votes", "top_candidates"]
