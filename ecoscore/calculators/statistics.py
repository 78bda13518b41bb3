"""
Leaderboard statistics for the program overview.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..utilities.common import current_time, get_settings
from .ranking import compute_leaderboard
from .scoring import ClassroomScore, _as_date, _field, round_half_up


@dataclass
class GradeLevelStat:
    grade: str
    average_score: int
    classroom_count: int

    def to_dict(self) -> dict:
        return {
            "grade": self.grade,
            "average_score": self.average_score,
            "classroom_count": self.classroom_count,
        }


@dataclass
class ProgramStats:
    total_classrooms: int
    total_evaluations: int
    average_score: int
    leading_classroom: Optional[ClassroomScore] = None
    top_grade_level: Optional[str] = None
    recent_activity_count: int = 0
    grade_levels: List[GradeLevelStat] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_classrooms": self.total_classrooms,
            "total_evaluations": self.total_evaluations,
            "average_score": self.average_score,
            "leading_classroom": self.leading_classroom.to_dict() if self.leading_classroom else None,
            "top_grade_level": self.top_grade_level,
            "recent_activity_count": self.recent_activity_count,
            "grade_levels": [g.to_dict() for g in self.grade_levels],
        }


def grade_level_stats(leaderboard: Sequence[ClassroomScore]) -> List[GradeLevelStat]:
    """
    Mean of classroom average scores per grade, best grade first

    Grades keep first-appearance order among equal means.
    """
    totals: Dict[str, List[int]] = {}
    for score in leaderboard:
        totals.setdefault(score.classroom.grade, []).append(score.average_score)

    stats = [
        GradeLevelStat(grade=grade, average_score=round_half_up(sum(values), len(values)),
                       classroom_count=len(values))
        for grade, values in totals.items()
    ]
    return sorted(stats, key=lambda s: -s.average_score)


def recent_evaluations(evaluations: Iterable[Any], limit: int = 5) -> List[Any]:
    """Newest evaluations first."""
    ordered = sorted(
        evaluations,
        key=lambda ev: _as_date(_field(ev, "evaluation_date")) or date.min,
        reverse=True,
    )
    return ordered[:limit]


def program_stats(
    evaluations: Sequence[Any],
    now: Optional[datetime] = None,
    directory: Optional[Dict[str, Any]] = None,
) -> ProgramStats:
    """
    Headline numbers for the program overview

    Args:
        evaluations: Active evaluation records
        now: Reference time for the recent-activity window
        directory: Optional classroom_id -> classroom lookup

    Returns:
        ProgramStats
    """
    leaderboard = compute_leaderboard(evaluations, directory=directory)
    total_evaluations = len(evaluations)
    score_sum = sum(int(_field(ev, "total_score", 0) or 0) for ev in evaluations)

    grades = grade_level_stats(leaderboard)
    # Strictly highest mean wins; a grade averaging 0 never counts as top
    top_grade = grades[0].grade if grades and grades[0].average_score > 0 else None

    today = (now or current_time()).date()
    window_start = today - timedelta(days=get_settings()['leaderboard']['recent_days'])
    recent = sum(
        1 for ev in evaluations
        if (_as_date(_field(ev, "evaluation_date")) or date.min) >= window_start
    )

    return ProgramStats(
        total_classrooms=len(leaderboard),
        total_evaluations=total_evaluations,
        average_score=round_half_up(score_sum, total_evaluations),
        leading_classroom=leaderboard[0] if leaderboard else None,
        top_grade_level=top_grade,
        recent_activity_count=recent,
        grade_levels=grades,
    )
