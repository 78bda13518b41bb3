"""
Shared service helpers: input validation and storage error translation.
"""

import logging
import math
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.models import DIVISIONS
from ..errors import StorageError, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(session: Session, action: str, **context: Any) -> Generator[None, None, None]:
    """
    Roll back and raise StorageError when a database call fails.

    Usage:
        with storage_errors(session, "list winners", year=2024):
            winners = queries.list_monthly_winners(session, year=2024)
    """
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise StorageError(f"Failed to {action}", context=context, cause=e) from e


def validate_division(division: Any) -> str:
    if not division:
        raise ValidationError("division", "Division is required", division)
    if division not in DIVISIONS:
        raise ValidationError(
            "division",
            f"Invalid division '{division}'. Expected one of: {', '.join(DIVISIONS)}",
            division,
        )
    return division


def validate_month(month: Any) -> int:
    if isinstance(month, bool) or not isinstance(month, int):
        raise ValidationError("month", "Month must be an integer between 1 and 12", month)
    if month < 1 or month > 12:
        raise ValidationError("month", "Month must be between 1 and 12", month)
    return month


def validate_year(year: Any) -> int:
    if isinstance(year, bool) or not isinstance(year, int) or year < 1:
        raise ValidationError("year", "Year must be a positive integer", year)
    return year


def validate_count(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(field, f"{field} must be a non-negative integer", value)
    return value


def validate_score(field: str, value: Any) -> float:
    # NaN fails every comparison, so check finiteness first
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field, f"{field} must be a number", value)
    if not math.isfinite(value) or value < 0:
        raise ValidationError(field, f"{field} must be a finite non-negative number", value)
    return value


def validate_required(field: str, value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(field, f"{field} is required", value)
    return value
