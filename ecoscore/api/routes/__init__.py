"""API routes for leaderboards, winners, evaluations and archival."""

from ecoscore.api.routes import archive, evaluations, leaderboard, winners

__all__ = ["archive", "evaluations", "leaderboard", "winners"]
