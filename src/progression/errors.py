"""
Exceptions raised by the progression engine.

Structural errors abort the operation and nothing partial is produced.
Phase-chain problems are collected as strings by the planner instead of
being raised; PhaseChainMismatch exists for callers that want to turn
those collected messages into a hard failure.
"""


class TournamentError(Exception):
    """Base class for every engine error."""


class InvalidEntrantCount(TournamentError):
    """A bracket needs at least two entrants."""


class InvalidPoolCount(TournamentError):
    """Pool count outside [1, total_teams] or producing out-of-range pools."""


class PhaseChainMismatch(TournamentError):
    """Qualified players of a phase do not fill the next phase."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class IncompleteMatchState(TournamentError):
    """Scores are absent or partial, or the match slots are not resolved yet."""


class InvalidScore(TournamentError):
    """Scores that can never be valid (negative, too many sets)."""


class PropagationError(TournamentError):
    """A downstream slot could not be written."""


class MatchEditRejected(TournamentError):
    """Editing the match would invalidate downstream matches already played."""


class MatchNotFound(TournamentError):
    """No match with the requested id exists in the graph."""


class BracketNotFound(TournamentError):
    """No stored bracket with the requested name."""
