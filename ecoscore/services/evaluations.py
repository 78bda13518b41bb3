"""
Evaluation records: recording, deleting and listing active evaluations,
plus the leaderboard views built from them.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..calculators.ranking import compute_division_leaderboard, compute_leaderboard
from ..calculators.scoring import ClassroomScore
from ..calculators.statistics import ProgramStats, program_stats
from ..database import queries
from ..database.models import Evaluation
from ..errors import NotFoundError, ValidationError
from ..utilities.common import current_time
from .common import storage_errors, validate_division, validate_month, validate_required, validate_year

logger = logging.getLogger(__name__)


def record_evaluation(
    session: Session,
    classroom_id: str,
    supervisor_id: str,
    total_score: int,
    max_score: int,
    items: Optional[Dict[str, Any]] = None,
    evaluation_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> Evaluation:
    """
    Store a supervisor's checklist evaluation

    evaluation_date defaults to today.

    Raises:
        ValidationError: Unknown classroom or score outside 0..max_score
        StorageError: Database failure
    """
    validate_required("classroom_id", classroom_id)
    validate_required("supervisor_id", supervisor_id)
    if evaluation_date is None:
        evaluation_date = current_time().date()
    elif not isinstance(evaluation_date, date):
        raise ValidationError("evaluation_date", "evaluation_date must be a date", evaluation_date)
    if isinstance(evaluation_date, datetime):
        evaluation_date = evaluation_date.date()
    if isinstance(max_score, bool) or not isinstance(max_score, int) or max_score <= 0:
        raise ValidationError("max_score", "max_score must be a positive integer", max_score)
    if isinstance(total_score, bool) or not isinstance(total_score, int) or not 0 <= total_score <= max_score:
        raise ValidationError(
            "total_score", f"total_score must be between 0 and {max_score}", total_score
        )

    with storage_errors(session, "record evaluation", classroom_id=classroom_id):
        if queries.get_classroom(session, classroom_id) is None:
            raise ValidationError("classroom_id", f"Classroom not found: {classroom_id}", classroom_id)

        evaluation = queries.add_evaluation(
            session,
            Evaluation(
                classroom_id=classroom_id,
                supervisor_id=supervisor_id,
                evaluation_date=evaluation_date,
                total_score=total_score,
                max_score=max_score,
                items=dict(items or {}),
                notes=notes or None,
            ),
        )
        session.commit()

    logger.info(f"Recorded evaluation {evaluation.id} for {classroom_id}: {total_score}/{max_score}")
    return evaluation


def delete_evaluation(session: Session, evaluation_id: str) -> None:
    """
    Delete one active evaluation

    Raises:
        NotFoundError: No active evaluation with this id
    """
    with storage_errors(session, "delete evaluation", evaluation_id=evaluation_id):
        if not queries.delete_evaluation(session, evaluation_id):
            session.rollback()
            raise NotFoundError("Evaluation", evaluation_id)
        session.commit()

    logger.info(f"Deleted evaluation {evaluation_id}")


def list_evaluations(
    session: Session,
    classroom_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    division: Optional[str] = None,
) -> List[Evaluation]:
    """Active evaluations, newest first, optionally filtered."""
    if division is not None:
        validate_division(division)
    date_range = None
    if start or end:
        date_range = (start or date.min, end or date.max)

    with storage_errors(session, "list evaluations"):
        return queries.list_evaluations(
            session, classroom_id=classroom_id, date_range=date_range, division=division
        )


def leaderboard(session: Session, include_unevaluated: bool = False) -> List[ClassroomScore]:
    """
    Ranked leaderboard over every active evaluation

    With include_unevaluated, active classrooms without evaluations are
    listed with zero scores.
    """
    with storage_errors(session, "build leaderboard"):
        evaluations = queries.list_evaluations(session)
        directory = queries.get_classroom_directory(session)
        seed = queries.list_classrooms(session, active=True) if include_unevaluated else None
    return compute_leaderboard(evaluations, classrooms=seed, directory=directory)


def division_leaderboard(
    session: Session,
    division: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[ClassroomScore]:
    """
    Ranked leaderboard of one division

    With year and month, only evaluations dated in that month count.
    """
    validate_division(division)
    if (year is None) != (month is None):
        raise ValidationError("month", "year and month must be given together", month)

    with storage_errors(session, "build division leaderboard", division=division):
        if year is not None:
            validate_year(year)
            validate_month(month)
            evaluations = queries.list_evaluations_for_month(session, year, month, division=division)
        else:
            evaluations = queries.list_evaluations(session, division=division)

    return compute_division_leaderboard(
        division, evaluations, year=year, month=month, limit=limit
    )


def leaderboard_stats(session: Session, now: Optional[datetime] = None) -> ProgramStats:
    """Program-wide statistics over the active store."""
    with storage_errors(session, "build leaderboard statistics"):
        evaluations = queries.list_evaluations(session)
        directory = queries.get_classroom_directory(session)
    return program_stats(evaluations, now=now, directory=directory)
