"""
Archive Routes

Monthly archival rollover and the administrator's archive-and-reset.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecoscore.api.dependencies import get_db
from ecoscore.services.archival import archive_all_evaluations, list_archive_runs, run_archival_check

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/check")
def check_archive(
    dry_run: bool = False,
    now: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """
    Archive the active evaluations if a new month has begun.

    Cheap no-op when nothing needs archiving; safe to call on every
    session start.
    """
    result = run_archival_check(db, now=now, dry_run=dry_run)
    return result.to_dict()


@router.post("/manual")
def manual_archive(db: Session = Depends(get_db)):
    """Archive every active evaluation now, regardless of month."""
    result = archive_all_evaluations(db)
    return result.to_dict()


@router.get("/runs")
def get_archive_runs(limit: int = 24, db: Session = Depends(get_db)):
    """Recent archive runs from the ledger."""
    runs = list_archive_runs(db, limit=limit)
    return {
        "runs": [
            {
                "id": run.id,
                "period_key": run.period_key,
                "from_month": run.from_month,
                "trigger": run.trigger_type,
                "status": run.status,
                "evaluations_archived": run.evaluations_archived,
                "evaluations_purged": run.evaluations_purged,
                "started_at": run.started_at.isoformat() if run.started_at else None,
                "completed_at": run.completed_at.isoformat() if run.completed_at else None,
                "error_message": run.error_message,
            }
            for run in runs
        ]
    }
