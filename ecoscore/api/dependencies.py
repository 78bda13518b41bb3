"""
FastAPI dependencies.
"""

from typing import Generator

from sqlalchemy.orm import Session

from ecoscore.database.connection import get_session


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; services commit their own writes."""
    session = get_session()
    try:
        yield session
    finally:
        session.close()
