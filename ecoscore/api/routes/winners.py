"""
Winner Routes

Endpoints for declaring, listing and removing monthly division winners.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ecoscore.api.dependencies import get_db
from ecoscore.calculators.ranking import with_ranks
from ecoscore.services import winners as winner_service
from ecoscore.services.common import validate_required

logger = logging.getLogger(__name__)

router = APIRouter()


class DeclareWinnerRequest(BaseModel):
    """
    Request body for declaring a winner.

    Without classroom_id the classroom at `rank` (1 by default) in the
    month's division leaderboard is declared, with its computed scores.
    """
    division: str
    year: int
    month: int
    classroom_id: Optional[str] = None
    total_score: Optional[int] = None
    average_score: Optional[float] = None
    evaluation_count: Optional[int] = None
    rank: int = 1
    notes: Optional[str] = None
    declared_by: Optional[str] = None


class DeclareWinnerResponse(BaseModel):
    """Response from a winner declaration."""
    created: bool
    message: str
    winner: dict


@router.get("")
def list_winners(
    year: Optional[int] = None,
    month: Optional[int] = None,
    division: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Declared winners, newest month first, divisions alphabetical."""
    winners = winner_service.list_winners(db, year=year, month=month, division=division)
    return {"count": len(winners), "winners": [w.to_dict() for w in winners]}


@router.post("", response_model=DeclareWinnerResponse)
def declare_winner(request: DeclareWinnerRequest, db: Session = Depends(get_db)):
    """
    Declare (or replace) the winner for a division and month.

    Declaring an already-declared period replaces the earlier winner.
    """
    if request.classroom_id:
        # Explicit declarations carry their own audit scores
        for field in ("total_score", "average_score", "evaluation_count"):
            validate_required(field, getattr(request, field))
        result = winner_service.declare_winner(
            db,
            classroom_id=request.classroom_id,
            division=request.division,
            year=request.year,
            month=request.month,
            total_score=request.total_score,
            average_score=request.average_score,
            evaluation_count=request.evaluation_count,
            notes=request.notes,
            declared_by=request.declared_by,
        )
    else:
        result = winner_service.declare_winner_from_candidate(
            db,
            division=request.division,
            year=request.year,
            month=request.month,
            rank=request.rank,
            notes=request.notes,
            declared_by=request.declared_by,
        )

    return DeclareWinnerResponse(**result.to_dict())


@router.get("/counts")
def get_win_counts(db: Session = Depends(get_db)):
    """Lifetime win count per classroom."""
    return {"counts": winner_service.classroom_win_counts(db)}


@router.get("/candidates")
def get_candidates(
    division: str,
    year: int,
    month: int,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Ranked classrooms of a division for one month."""
    candidates = winner_service.winner_candidates(db, division, year, month, limit=limit)
    return {
        "division": division,
        "year": year,
        "month": month,
        "candidates": [entry.to_dict() for entry in with_ranks(candidates)],
    }


@router.delete("/{winner_id}")
def delete_winner(winner_id: str, db: Session = Depends(get_db)):
    """Remove a winner declaration."""
    winner_service.delete_winner(db, winner_id)
    return {"deleted": True, "id": winner_id}
