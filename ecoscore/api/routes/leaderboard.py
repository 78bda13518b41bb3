"""
Leaderboard Routes

Ranked classroom views over the active evaluations.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ecoscore.api.dependencies import get_db
from ecoscore.calculators.ranking import top_n, with_ranks
from ecoscore.database.models import DIVISIONS
from ecoscore.services import evaluations as evaluation_service
from ecoscore.utilities.common import get_division_display_name

logger = logging.getLogger(__name__)

router = APIRouter()


class LeaderboardResponse(BaseModel):
    """Ranked leaderboard."""
    division: Optional[str] = None
    display_name: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    count: int
    entries: List[dict]


@router.get("", response_model=LeaderboardResponse)
def get_leaderboard(include_unevaluated: bool = False, db: Session = Depends(get_db)):
    """
    Global leaderboard.

    Ordered by total score, then average score. With include_unevaluated,
    active classrooms without evaluations are listed at zero.
    """
    board = evaluation_service.leaderboard(db, include_unevaluated=include_unevaluated)
    entries = [entry.to_dict() for entry in with_ranks(board)]
    return LeaderboardResponse(count=len(entries), entries=entries)


@router.get("/divisions")
def get_division_podiums(limit: Optional[int] = None, db: Session = Depends(get_db)):
    """Top classrooms of every division (configured top N by default)."""
    board = evaluation_service.leaderboard(db)
    divisions = []
    for division in DIVISIONS:
        ranked = top_n([s for s in board if s.division == division], limit)
        divisions.append({
            "division": division,
            "display_name": get_division_display_name(division),
            "entries": [entry.to_dict() for entry in with_ranks(ranked)],
        })
    return {"divisions": divisions}


@router.get("/divisions/{division}", response_model=LeaderboardResponse)
def get_division_leaderboard(
    division: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """
    Leaderboard for one division.

    With year and month, only evaluations dated in that month count.
    """
    board = evaluation_service.division_leaderboard(
        db, division, year=year, month=month, limit=limit
    )
    entries = [entry.to_dict() for entry in with_ranks(board)]
    return LeaderboardResponse(
        division=division,
        display_name=get_division_display_name(division),
        year=year,
        month=month,
        count=len(entries),
        entries=entries,
    )


@router.get("/stats")
def get_leaderboard_stats(db: Session = Depends(get_db)):
    """Program totals, leading classroom and grade-level averages."""
    stats = evaluation_service.leaderboard_stats(db)
    return stats.to_dict()
