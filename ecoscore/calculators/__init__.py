"""
Classroom Eco-Score calculators

Pure scoring, ranking and win-count functions over evaluation and
winner snapshots. No database access.
"""

from .ranking import (
    RankedEntry,
    compute_division_leaderboard,
    compute_leaderboard,
    rank_badge,
    rank_scores,
    score_band,
    top_n,
    with_ranks,
)
from .scoring import ClassroomRef, ClassroomScore, aggregate_scores, filter_by_month
from .statistics import grade_level_stats, program_stats, recent_evaluations
from .win_counts import win_counts

__all__ = [
    "ClassroomRef",
    "ClassroomScore",
    "RankedEntry",
    "aggregate_scores",
    "compute_division_leaderboard",
    "compute_leaderboard",
    "filter_by_month",
    "grade_level_stats",
    "program_stats",
    "rank_badge",
    "rank_scores",
    "recent_evaluations",
    "score_band",
    "top_n",
    "win_counts",
    "with_ranks",
]
