"""
Ranking Engine

Orders classroom aggregates into a leaderboard: total score descending,
then average score descending, remaining ties kept in aggregation order
(Python's sort is stable). Ranks are positional and never stored.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..errors import ValidationError
from ..utilities.common import get_settings
from .scoring import ClassroomScore, aggregate_scores, filter_by_month


def rank_scores(scores: Iterable[ClassroomScore]) -> List[ClassroomScore]:
    """Sort aggregates by total score, then average score, both descending."""
    return sorted(scores, key=lambda s: (-s.total_score, -s.average_score))


def check_limit(limit: Optional[int]) -> Optional[int]:
    """Reject limits below 1."""
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError("limit", "limit must be a positive integer", limit)
    return limit


def compute_leaderboard(
    evaluations: Iterable[Any],
    classrooms: Optional[Iterable[Any]] = None,
    directory: Optional[Mapping[str, Any]] = None,
) -> List[ClassroomScore]:
    """
    Global leaderboard

    Args:
        evaluations: Evaluation records
        classrooms: Optional classroom list; seeds zero-valued entries
        directory: Optional classroom_id -> classroom lookup

    Returns:
        Ranked ClassroomScore list
    """
    return rank_scores(aggregate_scores(evaluations, classrooms, directory))


def compute_division_leaderboard(
    division: str,
    evaluations: Iterable[Any],
    classrooms: Optional[Iterable[Any]] = None,
    directory: Optional[Mapping[str, Any]] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[ClassroomScore]:
    """
    Leaderboard restricted to one division

    Same ordering as compute_leaderboard. When year and month are both
    given, only evaluations dated in that calendar month count.

    Args:
        division: Division database value (e.g. 'Elementary')
        evaluations: Evaluation records
        classrooms: Optional classroom list; seeds zero-valued entries
        directory: Optional classroom_id -> classroom lookup
        year: Month window year
        month: Month window month (1-12)
        limit: Keep only the first `limit` entries (top-N view)

    Returns:
        Ranked ClassroomScore list for the division
    """
    check_limit(limit)
    if year is not None and month is not None:
        evaluations = filter_by_month(evaluations, year, month)

    aggregates = aggregate_scores(evaluations, classrooms, directory)
    ranked = rank_scores(s for s in aggregates if s.division == division)

    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def top_n(leaderboard: Sequence[ClassroomScore], n: Optional[int] = None) -> List[ClassroomScore]:
    """First n entries of a ranked leaderboard (configured top_n by default)."""
    if n is None:
        n = get_settings()['leaderboard']['top_n']
    check_limit(n)
    return list(leaderboard[:n])


@dataclass
class RankedEntry:
    """A leaderboard entry with its positional rank."""
    rank: int
    score: ClassroomScore

    @property
    def badge(self) -> str:
        return rank_badge(self.rank)

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "badge": self.badge,
            "score_band": score_band(self.score.average_score),
            **self.score.to_dict(),
        }


def with_ranks(leaderboard: Iterable[ClassroomScore]) -> List[RankedEntry]:
    """Attach 1-indexed positional ranks."""
    return [RankedEntry(rank=i, score=s) for i, s in enumerate(leaderboard, start=1)]


def rank_badge(rank: int) -> str:
    """
    Badge label for a leaderboard position

    Examples:
        >>> rank_badge(1)
        'Champion'
        >>> rank_badge(4)
        '#4'
    """
    if rank == 1:
        return "Champion"
    if rank == 2:
        return "Runner-up"
    if rank == 3:
        return "Third Place"
    return f"#{rank}"


def score_band(score: float) -> str:
    """
    Qualitative label for an average score, from configured bands

    Examples:
        >>> score_band(92)
        'Excellent'
        >>> score_band(40)
        'Needs Improvement'
    """
    settings = get_settings()['leaderboard']
    bands = sorted(settings['score_bands'], key=lambda b: b['min'], reverse=True)
    for band in bands:
        if score >= band['min']:
            return band['label']
    return settings['default_band']
