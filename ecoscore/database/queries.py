# ecoscore/database/queries.py
"""
Storage queries for the Classroom Eco-Score engine.

The evaluation store, classroom directory, archive and monthly-winner
store used by the services. Functions take a Session and leave
transaction control (commit/rollback) to the caller; SQLAlchemy errors
propagate unchanged.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, desc, exists, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, selectinload

from ..utilities.common import month_bounds, month_key
from .models import (
    ArchiveEvaluation,
    ArchiveRun,
    Classroom,
    Evaluation,
    MonthlyWinner,
    new_id,
)

DateRange = Tuple[date, date]

WINNER_KEY_COLUMNS = ("division", "year", "month")


# =============================================================================
# CLASSROOM DIRECTORY
# =============================================================================


def get_classroom(session: Session, classroom_id: str) -> Optional[Classroom]:
    """Get a single classroom by id."""
    return session.get(Classroom, classroom_id)


def list_classrooms(
    session: Session,
    division: Optional[str] = None,
    active: Optional[bool] = None,
) -> List[Classroom]:
    """List classrooms, ordered by name."""
    stmt = select(Classroom)
    if division:
        stmt = stmt.where(Classroom.division == division)
    if active is not None:
        stmt = stmt.where(Classroom.is_active == active)
    return list(session.scalars(stmt.order_by(Classroom.name, Classroom.id)))


def get_classroom_directory(session: Session) -> Dict[str, Classroom]:
    """Map every classroom id to its Classroom."""
    return {c.id: c for c in list_classrooms(session)}


# =============================================================================
# EVALUATION STORE
# =============================================================================


def list_evaluations(
    session: Session,
    classroom_id: Optional[str] = None,
    date_range: Optional[DateRange] = None,
    division: Optional[str] = None,
) -> List[Evaluation]:
    """
    List active evaluations, newest first, with their classroom loaded.

    Args:
        session: SQLAlchemy session
        classroom_id: Only this classroom's evaluations
        date_range: Inclusive (start, end) evaluation dates
        division: Only evaluations of classrooms in this division

    Returns:
        List of Evaluation objects
    """
    stmt = select(Evaluation).options(selectinload(Evaluation.classroom))

    if classroom_id:
        stmt = stmt.where(Evaluation.classroom_id == classroom_id)
    if date_range:
        start, end = date_range
        stmt = stmt.where(Evaluation.evaluation_date.between(start, end))
    if division:
        stmt = stmt.join(Classroom, Classroom.id == Evaluation.classroom_id).where(
            Classroom.division == division
        )

    stmt = stmt.order_by(
        desc(Evaluation.evaluation_date), desc(Evaluation.created_at), Evaluation.id
    )
    return list(session.scalars(stmt))


def list_evaluations_for_month(
    session: Session,
    year: int,
    month: int,
    division: Optional[str] = None,
) -> List[Evaluation]:
    """Active evaluations dated within one calendar month."""
    return list_evaluations(session, date_range=month_bounds(year, month), division=division)


def get_evaluation(session: Session, evaluation_id: str) -> Optional[Evaluation]:
    """Get a single active evaluation by id."""
    return session.get(Evaluation, evaluation_id)


def count_evaluations(
    session: Session, evaluation_ids: Optional[Sequence[str]] = None
) -> int:
    """Number of rows in the active store, optionally among the given ids."""
    stmt = select(func.count()).select_from(Evaluation)
    if evaluation_ids is not None:
        if not evaluation_ids:
            return 0
        stmt = stmt.where(Evaluation.id.in_(list(evaluation_ids)))
    return session.scalar(stmt) or 0


def get_latest_evaluation_date(session: Session) -> Optional[date]:
    """Date of the most recent active evaluation, or None when empty."""
    return session.scalar(select(func.max(Evaluation.evaluation_date)))


def add_evaluation(session: Session, evaluation: Evaluation) -> Evaluation:
    """Insert one evaluation and flush to assign defaults."""
    session.add(evaluation)
    session.flush()
    return evaluation


def delete_evaluation(session: Session, evaluation_id: str) -> bool:
    """Delete one active evaluation. Returns False if it didn't exist."""
    result = session.execute(delete(Evaluation).where(Evaluation.id == evaluation_id))
    return result.rowcount > 0


def delete_all_evaluations(
    session: Session, evaluation_ids: Optional[Sequence[str]] = None
) -> int:
    """
    Delete rows from the active store.

    Args:
        session: SQLAlchemy session
        evaluation_ids: Restrict the delete to these ids (all rows if None)

    Returns:
        Number of rows deleted
    """
    stmt = delete(Evaluation)
    if evaluation_ids is not None:
        if not evaluation_ids:
            return 0
        stmt = stmt.where(Evaluation.id.in_(list(evaluation_ids)))
    result = session.execute(stmt)
    return result.rowcount


# =============================================================================
# ARCHIVE
# =============================================================================


def insert_archive_evaluations(
    session: Session,
    evaluations: Iterable[Evaluation],
    archived_at: datetime,
    archive_run: Optional[ArchiveRun] = None,
) -> int:
    """
    Copy evaluations into archive_evaluations, stamping archived_at.

    Flushes so constraint violations surface before the caller deletes
    anything from the active store.

    Returns:
        Number of archive rows written
    """
    run_id = archive_run.id if archive_run is not None else None
    rows = [
        ArchiveEvaluation.from_evaluation(ev, archived_at=archived_at, archive_run_id=run_id)
        for ev in evaluations
    ]
    session.add_all(rows)
    session.flush()
    if archive_run is not None:
        archive_run.evaluations_archived = len(rows)
    return len(rows)


def count_archive_evaluations(session: Session) -> int:
    """Number of rows in the archive."""
    return session.scalar(select(func.count()).select_from(ArchiveEvaluation)) or 0


def list_archive_evaluations(
    session: Session, archive_run_id: Optional[int] = None
) -> List[ArchiveEvaluation]:
    """Archived evaluations, most recently archived first."""
    stmt = select(ArchiveEvaluation)
    if archive_run_id is not None:
        stmt = stmt.where(ArchiveEvaluation.archive_run_id == archive_run_id)
    return list(
        session.scalars(
            stmt.order_by(desc(ArchiveEvaluation.archived_at), desc(ArchiveEvaluation.evaluation_date))
        )
    )


def archive_exists_in_month(
    session: Session, year: int, month: int, tz: tzinfo = timezone.utc
) -> bool:
    """
    Whether an archive batch has already been written during a month.

    True if an automatic run claimed the month in the ledger, or if any
    archive row carries an archived_at inside the month.
    """
    # Month edges in tz, compared as UTC instants like the stored stamps
    start = datetime(year, month, 1, tzinfo=tz).astimezone(timezone.utc)
    end = datetime(*_next_month(year, month), 1, tzinfo=tz).astimezone(timezone.utc)

    claimed = exists().where(ArchiveRun.period_key == month_key(year, month))
    stamped = exists().where(
        ArchiveEvaluation.archived_at >= start,
        ArchiveEvaluation.archived_at < end,
    )
    return bool(session.scalar(select(or_(claimed, stamped))))


def list_archive_runs(session: Session, limit: int = 24) -> List[ArchiveRun]:
    """Most recent archive runs first."""
    return list(
        session.scalars(select(ArchiveRun).order_by(desc(ArchiveRun.started_at)).limit(limit))
    )


def _next_month(year: int, month: int) -> Tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


# =============================================================================
# MONTHLY WINNERS
# =============================================================================


def get_monthly_winner(
    session: Session, division: str, year: int, month: int
) -> Optional[MonthlyWinner]:
    """The winner row for (division, year, month), refreshed from the database."""
    stmt = (
        select(MonthlyWinner)
        .where(
            MonthlyWinner.division == division,
            MonthlyWinner.year == year,
            MonthlyWinner.month == month,
        )
        .execution_options(populate_existing=True)
    )
    return session.scalars(stmt).first()


def upsert_monthly_winner(
    session: Session,
    key: Tuple[str, int, int],
    fields: Dict[str, Any],
) -> MonthlyWinner:
    """
    Insert or replace the winner for a (division, year, month) key.

    PostgreSQL and SQLite use INSERT ... ON CONFLICT DO UPDATE against
    uq_monthly_winner. Other dialects lock the existing row with
    SELECT ... FOR UPDATE before updating it.

    Args:
        session: SQLAlchemy session
        key: (division, year, month)
        fields: Column values to write (classroom_id, scores, declared_by, ...)

    Returns:
        The stored MonthlyWinner
    """
    division, year, month = key
    key_values = {"division": division, "year": year, "month": month}
    dialect = session.get_bind().dialect.name

    if dialect in ("postgresql", "sqlite"):
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(MonthlyWinner).values(id=new_id(), **key_values, **fields)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(WINNER_KEY_COLUMNS),
            set_={name: stmt.excluded[name] for name in fields},
        )
        session.execute(stmt)
    else:
        existing = session.scalars(
            select(MonthlyWinner)
            .where(
                MonthlyWinner.division == division,
                MonthlyWinner.year == year,
                MonthlyWinner.month == month,
            )
            .with_for_update()
        ).first()
        if existing is None:
            session.add(MonthlyWinner(id=new_id(), **key_values, **fields))
        else:
            for name, value in fields.items():
                setattr(existing, name, value)
        session.flush()

    return get_monthly_winner(session, division, year, month)


def list_monthly_winners(
    session: Session,
    year: Optional[int] = None,
    month: Optional[int] = None,
    division: Optional[str] = None,
) -> List[MonthlyWinner]:
    """Winners ordered year desc, month desc, division asc."""
    stmt = select(MonthlyWinner).options(selectinload(MonthlyWinner.classroom))
    if year:
        stmt = stmt.where(MonthlyWinner.year == year)
    if month:
        stmt = stmt.where(MonthlyWinner.month == month)
    if division:
        stmt = stmt.where(MonthlyWinner.division == division)
    stmt = stmt.order_by(
        desc(MonthlyWinner.year), desc(MonthlyWinner.month), MonthlyWinner.division
    )
    return list(session.scalars(stmt))


def delete_monthly_winner(session: Session, winner_id: str) -> bool:
    """Delete a winner declaration. Returns False if it didn't exist."""
    winner = session.get(MonthlyWinner, winner_id)
    if winner is None:
        return False
    session.delete(winner)
    session.flush()
    return True
