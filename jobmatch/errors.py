"""Exceptions raised by the matching engine.

"No matches" is never an exception: it is a ``DistributionResult`` with
``status == MatchStatus.NO_MATCHES``.
"""
from __future__ import annotations


class MatchingError(Exception):
    """Base exception for all matching errors."""


class InvalidMatchRequest(MatchingError):
    """Raised before the pipeline runs when its input cannot be used.

    ``errors`` holds one human-readable entry per problem found so the
    caller can report a structured validation failure.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid match request: " + "; ".join(self.errors))


class ReRankerError(MatchingError):
    """The AI re-ranker failed or returned something unusable."""


class ReRankerUnavailable(ReRankerError):
    """The AI re-ranker cannot be used (no credentials, client missing)."""


class DispatchError(MatchingError):
    """A durable re-rank event could not be handed to the event endpoint."""
