# ecoscore/database/__init__.py
"""
Database module for the Classroom Eco-Score engine.

Provides SQLAlchemy models, connection management, and storage queries.
"""

from .connection import get_engine, get_session, init_db, session_scope
from .models import (
    Base,
    Classroom,
    Evaluation,
    ArchiveRun,
    ArchiveEvaluation,
    MonthlyWinner,
    DIVISIONS,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_db",
    "session_scope",
    "Base",
    "Classroom",
    "Evaluation",
    "ArchiveRun",
    "ArchiveEvaluation",
    "MonthlyWinner",
    "DIVISIONS",
]
