# ecoscore/database/models.py
"""
SQLAlchemy ORM models for the Classroom Eco-Score engine.

Active evaluations, their archive, declared monthly winners and the
archive-run ledger. Classrooms are read-only from the engine's point of
view; they are modelled here so evaluations and winners can join to them.
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Database values. Display names live in utilities.common.
DIVISIONS = (
    "Pre-School",
    "Elementary",
    "Middle School",
    "High School",
    "Technical Institute",
)

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _division_check(column: str = "division") -> str:
    values = ", ".join(f"'{d}'" for d in DIVISIONS)
    return f"{column} IN ({values})"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Classroom(Base):
    """
    A classroom taking part in the eco-score program.

    Owned by the surrounding application; the engine only reads
    name, grade and division.
    """
    __tablename__ = "classrooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    grade: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    division: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    evaluations: Mapped[List["Evaluation"]] = relationship(
        back_populates="classroom", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(_division_check(), name="chk_classroom_division"),
    )

    def __repr__(self) -> str:
        return f"<Classroom {self.id}: {self.name} ({self.division})>"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "id": self.id,
            "name": self.name,
            "grade": self.grade,
            "division": self.division,
            "is_active": self.is_active,
        }


class Evaluation(Base):
    """
    One supervisor's checklist evaluation of a classroom.

    Immutable once created; leaves the table only by deletion or by
    being moved into archive_evaluations.
    """
    __tablename__ = "evaluations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    classroom_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supervisor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    evaluation_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # item_id -> checked; passed through untouched
    items = Column(JSONPayload, default=dict, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    classroom: Mapped[Optional["Classroom"]] = relationship(back_populates="evaluations")

    __table_args__ = (
        CheckConstraint("total_score >= 0", name="chk_evaluation_score_nonnegative"),
        CheckConstraint("max_score > 0", name="chk_evaluation_max_positive"),
        CheckConstraint("total_score <= max_score", name="chk_evaluation_score_within_max"),
    )

    def __repr__(self) -> str:
        return f"<Evaluation {self.id}: {self.classroom_id} {self.evaluation_date} {self.total_score}/{self.max_score}>"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "supervisor_id": self.supervisor_id,
            "evaluation_date": self.evaluation_date.isoformat() if self.evaluation_date else None,
            "total_score": self.total_score,
            "max_score": self.max_score,
            "items": self.items,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ArchiveRun(Base):
    """
    Ledger of archive batches.

    Automatic rollovers set period_key to the month they ran in; the
    unique constraint lets only one of several concurrent callers claim
    a month. Manual archives leave period_key NULL.
    """
    __tablename__ = "archive_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    period_key: Mapped[Optional[str]] = mapped_column(String(7), unique=True)
    from_month: Mapped[Optional[str]] = mapped_column(String(7))
    trigger_type: Mapped[str] = mapped_column(String(10), nullable=False)  # auto, manual
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # archiving, completed, purge_failed

    evaluations_archived: Mapped[int] = mapped_column(Integer, default=0)
    evaluations_purged: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    error_message: Mapped[Optional[str]] = mapped_column(Text)

    archived_evaluations: Mapped[List["ArchiveEvaluation"]] = relationship(
        back_populates="archive_run"
    )

    __table_args__ = (
        CheckConstraint("trigger_type IN ('auto', 'manual')", name="chk_archive_run_trigger"),
        CheckConstraint(
            "status IN ('archiving', 'completed', 'purge_failed')",
            name="chk_archive_run_status"
        ),
    )

    def __repr__(self) -> str:
        return f"<ArchiveRun {self.id} {self.period_key or 'manual'}: {self.status}>"

    @classmethod
    def start_run(
        cls,
        session,
        trigger: str,
        started_at: datetime,
        period_key: Optional[str] = None,
        from_month: Optional[str] = None,
    ) -> "ArchiveRun":
        """Claim a ledger row. Flushes so unique violations surface here."""
        run = cls(
            period_key=period_key,
            from_month=from_month,
            trigger_type=trigger,
            status="archiving",
            started_at=started_at,
        )
        session.add(run)
        session.flush()
        return run

    def complete(self, purged: int, completed_at: datetime) -> None:
        """Mark run as completed."""
        self.status = "completed"
        self.evaluations_purged = purged
        self.completed_at = completed_at

    def fail_purge(self, purged: int, error_message: str) -> None:
        """Mark run as archived but not purged."""
        self.status = "purge_failed"
        self.evaluations_purged = purged
        self.error_message = error_message


class ArchiveEvaluation(Base):
    """
    An evaluation moved out of the active store.

    Keeps the original evaluation id as primary key, so a given
    evaluation can be archived at most once.
    """
    __tablename__ = "archive_evaluations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # No foreign key: archives outlive classrooms
    classroom_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    supervisor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    evaluation_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    items = Column(JSONPayload, default=dict, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    archived_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    archive_run_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("archive_runs.id", ondelete="SET NULL")
    )

    archive_run: Mapped[Optional["ArchiveRun"]] = relationship(
        back_populates="archived_evaluations"
    )

    def __repr__(self) -> str:
        return f"<ArchiveEvaluation {self.id}: {self.classroom_id} archived {self.archived_at}>"

    @classmethod
    def from_evaluation(
        cls,
        evaluation: Evaluation,
        archived_at: datetime,
        archive_run_id: Optional[int] = None,
    ) -> "ArchiveEvaluation":
        """Copy an active evaluation, stamping archived_at."""
        return cls(
            id=evaluation.id,
            classroom_id=evaluation.classroom_id,
            supervisor_id=evaluation.supervisor_id,
            evaluation_date=evaluation.evaluation_date,
            total_score=evaluation.total_score,
            max_score=evaluation.max_score,
            items=dict(evaluation.items or {}),
            notes=evaluation.notes,
            created_at=evaluation.created_at,
            archived_at=archived_at,
            archive_run_id=archive_run_id,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "supervisor_id": self.supervisor_id,
            "evaluation_date": self.evaluation_date.isoformat() if self.evaluation_date else None,
            "total_score": self.total_score,
            "max_score": self.max_score,
            "items": self.items,
            "archived_at": self.archived_at.isoformat() if self.archived_at else None,
            "archive_run_id": self.archive_run_id,
        }


class MonthlyWinner(Base):
    """
    The classroom declared best-in-division for one calendar month.

    At most one row per (division, year, month); re-declaring replaces it.
    """
    __tablename__ = "monthly_winners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    classroom_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classrooms.id"), nullable=False, index=True
    )
    division: Mapped[str] = mapped_column(String(30), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    total_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    evaluation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    declared_by: Mapped[Optional[str]] = mapped_column(String(36))
    declared_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    classroom: Mapped[Optional["Classroom"]] = relationship()

    __table_args__ = (
        UniqueConstraint("division", "year", "month", name="uq_monthly_winner"),
        CheckConstraint("month BETWEEN 1 AND 12", name="chk_winner_month"),
        CheckConstraint(_division_check(), name="chk_winner_division"),
    )

    def __repr__(self) -> str:
        return f"<MonthlyWinner {self.division} {self.year}-{self.month:02d}: {self.classroom_id}>"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "division": self.division,
            "year": self.year,
            "month": self.month,
            "total_score": self.total_score,
            "average_score": self.average_score,
            "evaluation_count": self.evaluation_count,
            "declared_by": self.declared_by,
            "declared_at": self.declared_at.isoformat() if self.declared_at else None,
            "notes": self.notes,
            "classroom": self.classroom.to_dict() if self.classroom else None,
        }
