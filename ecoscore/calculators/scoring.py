"""
Scoring Aggregator

Folds raw evaluation records into per-classroom totals, counts and
averages. Pure and deterministic: the same evaluations (in the same
order) always give the same aggregates, in the same order.

Records can be ORM objects (Evaluation, Classroom) or plain dicts with
the same field names.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

NEVER_EVALUATED = "Never"


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def round_half_up(total: int, count: int) -> int:
    """
    Integer mean rounded half-up

    Example:
        >>> round_half_up(5, 2)
        3
        >>> round_half_up(250, 3)
        83
    """
    if count <= 0:
        return 0
    quotient = Decimal(total) / Decimal(count)
    return int(quotient.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ClassroomRef:
    """Snapshot of the classroom fields the leaderboard displays."""
    id: str
    name: str
    grade: str = ""
    division: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any, classroom_id: Optional[str] = None) -> "ClassroomRef":
        if isinstance(record, ClassroomRef):
            return record
        return cls(
            id=classroom_id or _field(record, "id"),
            name=_field(record, "name", ""),
            grade=_field(record, "grade", "") or "",
            division=_field(record, "division"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "grade": self.grade,
            "division": self.division,
        }


@dataclass
class ClassroomScore:
    """
    Aggregate score of one classroom over a set of evaluations.

    average_score is the integer (round-half-up) mean used for ranking;
    mean_score keeps full precision for winner records.
    """
    classroom: ClassroomRef
    total_score: int = 0
    evaluation_count: int = 0
    last_evaluated: Optional[date] = None

    @property
    def average_score(self) -> int:
        return round_half_up(self.total_score, self.evaluation_count)

    @property
    def mean_score(self) -> float:
        if self.evaluation_count == 0:
            return 0.0
        return self.total_score / self.evaluation_count

    @property
    def last_evaluated_display(self) -> str:
        if self.last_evaluated is None:
            return NEVER_EVALUATED
        return self.last_evaluated.isoformat()

    @property
    def division(self) -> Optional[str]:
        return self.classroom.division

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "classroom": self.classroom.to_dict(),
            "total_score": self.total_score,
            "evaluation_count": self.evaluation_count,
            "average_score": self.average_score,
            "mean_score": round(self.mean_score, 2),
            "last_evaluated": self.last_evaluated_display,
        }


def aggregate_scores(
    evaluations: Iterable[Any],
    classrooms: Optional[Iterable[Any]] = None,
    directory: Optional[Mapping[str, Any]] = None,
) -> List[ClassroomScore]:
    """
    Group evaluations by classroom and accumulate totals

    Args:
        evaluations: Evaluation records (classroom_id, total_score,
            evaluation_date, optionally a joined `classroom`)
        classrooms: Optional full classroom list. Every classroom in it
            gets an entry, zero-valued when it has no evaluations.
        directory: Optional classroom_id -> classroom lookup used to
            resolve each evaluation's classroom

    Returns:
        ClassroomScore list in aggregation order: seeded classrooms in the
        order given, then classrooms by first appearance in `evaluations`.
        Evaluations whose classroom cannot be resolved are left out.

    Example:
        >>> evals = [
        ...     {"classroom_id": "c1", "total_score": 80, "evaluation_date": "2024-03-01",
        ...      "classroom": {"name": "1A", "grade": "1", "division": "Elementary"}},
        ...     {"classroom_id": "c1", "total_score": 90, "evaluation_date": "2024-03-08",
        ...      "classroom": {"name": "1A", "grade": "1", "division": "Elementary"}},
        ... ]
        >>> [(s.total_score, s.evaluation_count, s.average_score) for s in aggregate_scores(evals)]
        [(170, 2, 85)]
    """
    scores: Dict[str, ClassroomScore] = {}
    seeded: Dict[str, ClassroomRef] = {}

    for classroom in classrooms or []:
        ref = ClassroomRef.from_record(classroom)
        seeded[ref.id] = ref
        scores[ref.id] = ClassroomScore(classroom=ref)

    for evaluation in evaluations:
        classroom_id = _field(evaluation, "classroom_id")
        entry = scores.get(classroom_id)

        if entry is None:
            record = None
            if directory is not None:
                record = directory.get(classroom_id)
            if record is None:
                record = _field(evaluation, "classroom")
            if record is None:
                # Deleted or unknown classroom
                continue
            entry = ClassroomScore(classroom=ClassroomRef.from_record(record, classroom_id))
            scores[classroom_id] = entry

        entry.total_score += int(_field(evaluation, "total_score", 0) or 0)
        entry.evaluation_count += 1

        evaluated_on = _as_date(_field(evaluation, "evaluation_date"))
        if evaluated_on is not None and (
            entry.last_evaluated is None or evaluated_on > entry.last_evaluated
        ):
            entry.last_evaluated = evaluated_on

    return list(scores.values())


def filter_by_month(evaluations: Iterable[Any], year: int, month: int) -> List[Any]:
    """Evaluations whose evaluation_date falls in the given calendar month."""
    selected = []
    for evaluation in evaluations:
        evaluated_on = _as_date(_field(evaluation, "evaluation_date"))
        if evaluated_on is not None and (evaluated_on.year, evaluated_on.month) == (year, month):
            selected.append(evaluation)
    return selected
