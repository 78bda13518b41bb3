"""
Winner Declaration Service

Freezes one winning classroom per division per calendar month.
Re-declaring a period replaces the earlier winner (the correction
workflow); the (division, year, month) unique key plus a native upsert
keeps concurrent declarations from creating duplicates.

Usage:
    from ecoscore.services.winners import declare_winner

    result = declare_winner(session, "c2", "Elementary", 2024, 3,
                            total_score=300, average_score=100.0, evaluation_count=3)
    print(result.message)   # Declared winner for Elementary - 3/2024
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..calculators.ranking import compute_division_leaderboard
from ..calculators.scoring import ClassroomScore
from ..calculators.win_counts import win_counts
from ..database import queries
from ..database.models import MonthlyWinner, utcnow
from ..errors import NotFoundError, ValidationError
from .common import (
    storage_errors,
    validate_count,
    validate_division,
    validate_month,
    validate_required,
    validate_score,
    validate_year,
)

logger = logging.getLogger(__name__)


@dataclass
class DeclarationResult:
    """Outcome of a winner declaration."""
    winner: MonthlyWinner
    created: bool

    @property
    def message(self) -> str:
        verb = "Declared" if self.created else "Updated"
        return f"{verb} winner for {self.winner.division} - {self.winner.month}/{self.winner.year}"

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "message": self.message,
            "winner": self.winner.to_dict(),
        }


def declare_winner(
    session: Session,
    classroom_id: str,
    division: str,
    year: int,
    month: int,
    total_score: int,
    average_score: float,
    evaluation_count: int,
    notes: Optional[str] = None,
    declared_by: Optional[str] = None,
    declared_at: Optional[datetime] = None,
) -> DeclarationResult:
    """
    Declare (or replace) the winner for a division and month

    Args:
        session: SQLAlchemy session
        classroom_id: Winning classroom; must exist
        division: One of the five division values
        year: Calendar year
        month: Calendar month (1-12)
        total_score: Classroom's total for the month
        average_score: Unrounded mean score, kept for audit/export
        evaluation_count: Number of evaluations behind the scores
        notes: Optional administrator notes
        declared_by: Id of the declaring administrator
        declared_at: Declaration timestamp (now if omitted)

    Returns:
        DeclarationResult with the stored winner and whether it was new

    Raises:
        ValidationError: Bad input; nothing is written
        StorageError: Database failure; the transaction is rolled back
    """
    validate_required("classroom_id", classroom_id)
    validate_division(division)
    validate_month(month)
    validate_year(year)
    validate_count("total_score", total_score)
    validate_score("average_score", average_score)
    validate_count("evaluation_count", evaluation_count)

    with storage_errors(session, "declare winner", division=division, year=year, month=month):
        if queries.get_classroom(session, classroom_id) is None:
            raise ValidationError("classroom_id", f"Classroom not found: {classroom_id}", classroom_id)

        existed = queries.get_monthly_winner(session, division, year, month) is not None
        winner = queries.upsert_monthly_winner(
            session,
            (division, year, month),
            {
                "classroom_id": classroom_id,
                "total_score": total_score,
                "average_score": float(average_score),
                "evaluation_count": evaluation_count,
                "declared_by": declared_by,
                "declared_at": declared_at or utcnow(),
                "notes": notes or None,
            },
        )
        session.commit()

    result = DeclarationResult(winner=winner, created=not existed)
    logger.info(f"{result.message}: classroom {classroom_id} ({total_score} pts)")
    return result


def winner_candidates(
    session: Session,
    division: str,
    year: int,
    month: int,
    limit: Optional[int] = None,
) -> List[ClassroomScore]:
    """
    Ranked classrooms of a division for one month, best first

    Only evaluations dated within the month count.
    """
    validate_division(division)
    validate_month(month)
    validate_year(year)

    with storage_errors(session, "rank winner candidates", division=division, year=year, month=month):
        evaluations = queries.list_evaluations_for_month(session, year, month, division=division)

    return compute_division_leaderboard(
        division, evaluations, year=year, month=month, limit=limit
    )


def declare_winner_from_candidate(
    session: Session,
    division: str,
    year: int,
    month: int,
    rank: int = 1,
    notes: Optional[str] = None,
    declared_by: Optional[str] = None,
) -> DeclarationResult:
    """
    Declare the classroom at `rank` in the month's division leaderboard

    Stores the candidate's unrounded mean as average_score.
    """
    if isinstance(rank, bool) or not isinstance(rank, int) or rank < 1:
        raise ValidationError("rank", "Rank must be a positive integer", rank)

    candidates = winner_candidates(session, division, year, month)
    if rank > len(candidates):
        raise ValidationError(
            "rank",
            f"No candidate at rank {rank} for {division} {month}/{year} "
            f"({len(candidates)} classrooms evaluated)",
            rank,
        )

    candidate = candidates[rank - 1]
    return declare_winner(
        session,
        classroom_id=candidate.classroom.id,
        division=division,
        year=year,
        month=month,
        total_score=candidate.total_score,
        average_score=candidate.mean_score,
        evaluation_count=candidate.evaluation_count,
        notes=notes,
        declared_by=declared_by,
    )


def list_winners(
    session: Session,
    year: Optional[int] = None,
    month: Optional[int] = None,
    division: Optional[str] = None,
) -> List[MonthlyWinner]:
    """Declared winners, newest period first."""
    if month is not None:
        validate_month(month)
    if division is not None:
        validate_division(division)

    with storage_errors(session, "list winners", year=year, month=month, division=division):
        return queries.list_monthly_winners(session, year=year, month=month, division=division)


def delete_winner(session: Session, winner_id: str) -> None:
    """
    Remove a winner declaration; the period can then be declared again

    Raises:
        NotFoundError: No winner with this id
    """
    with storage_errors(session, "delete winner", winner_id=winner_id):
        deleted = queries.delete_monthly_winner(session, winner_id)
        if not deleted:
            session.rollback()
            raise NotFoundError("MonthlyWinner", winner_id)
        session.commit()

    logger.info(f"Deleted winner {winner_id}")


def classroom_win_counts(session: Session) -> Dict[str, int]:
    """Lifetime win count per classroom id."""
    with storage_errors(session, "count wins"):
        winners = queries.list_monthly_winners(session)
    return win_counts(winners)
