"""
Evaluation Routes

Recording, listing and deleting active evaluations.
"""

import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ecoscore.api.dependencies import get_db
from ecoscore.services import evaluations as evaluation_service

logger = logging.getLogger(__name__)

router = APIRouter()


class EvaluationRequest(BaseModel):
    """Request body for recording an evaluation."""
    classroom_id: str
    supervisor_id: str
    total_score: int
    max_score: int
    items: Dict[str, bool] = Field(default_factory=dict)
    evaluation_date: Optional[date] = None
    notes: Optional[str] = None


@router.get("")
def list_evaluations(
    classroom_id: Optional[str] = None,
    division: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Active evaluations, newest first."""
    evaluations = evaluation_service.list_evaluations(
        db, classroom_id=classroom_id, start=start, end=end, division=division
    )
    return {"count": len(evaluations), "evaluations": [ev.to_dict() for ev in evaluations]}


@router.post("", status_code=201)
def record_evaluation(request: EvaluationRequest, db: Session = Depends(get_db)):
    """Record a supervisor's checklist evaluation."""
    evaluation = evaluation_service.record_evaluation(
        db,
        classroom_id=request.classroom_id,
        supervisor_id=request.supervisor_id,
        total_score=request.total_score,
        max_score=request.max_score,
        items=request.items,
        evaluation_date=request.evaluation_date,
        notes=request.notes,
    )
    return evaluation.to_dict()


@router.delete("/{evaluation_id}")
def delete_evaluation(evaluation_id: str, db: Session = Depends(get_db)):
    """Delete an active evaluation."""
    evaluation_service.delete_evaluation(db, evaluation_id)
    return {"deleted": True, "id": evaluation_id}
