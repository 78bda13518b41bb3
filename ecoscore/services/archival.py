"""
Archival Rollover Service

Moves every active evaluation into the archive once per calendar month,
so the live leaderboard starts each month from zero while history is
kept.

The move runs in two phases:

1. Claim the month in archive_runs, copy the evaluations into
   archive_evaluations and commit. A failure here rolls everything back
   and leaves the active store untouched.
2. Delete exactly the archived ids from the active store and commit.
   A failure here leaves each evaluation in both stores; the run is
   marked purge_failed and ConsistencyError carries the ids so an
   operator can finish the purge by hand.

Usage:
    from ecoscore.database import session_scope
    from ecoscore.services.archival import run_archival_check

    with session_scope() as session:
        result = run_archival_check(session)
        print(result.to_dict())
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import queries
from ..database.models import ArchiveRun
from ..errors import ConsistencyError, StorageError
from ..utilities.common import current_time, get_archive_timezone, month_key, year_month
from .common import storage_errors

logger = logging.getLogger(__name__)

# Reasons reported when nothing was archived
NO_EVALUATIONS = "no_evaluations"
SAME_MONTH = "same_month"
ALREADY_ARCHIVED = "already_archived"
WOULD_ARCHIVE = "would_archive"
MANUAL = "manual"


@dataclass
class ArchivalResult:
    """Outcome of an archival check or manual archive."""
    archived: bool
    reason: Optional[str] = None
    count: Optional[int] = None
    from_month: Optional[str] = None
    archive_run_id: Optional[int] = None

    def to_dict(self) -> dict:
        result = {"archived": self.archived}
        if self.reason is not None:
            result["reason"] = self.reason
        if self.count is not None:
            result["count"] = self.count
        if self.from_month is not None:
            result["from_month"] = self.from_month
        if self.archive_run_id is not None:
            result["archive_run_id"] = self.archive_run_id
        return result


def _localize(now: Optional[datetime]) -> datetime:
    if now is None:
        return current_time()
    if now.tzinfo is None:
        return now.replace(tzinfo=get_archive_timezone())
    return now.astimezone(get_archive_timezone())


def run_archival_check(
    session: Session,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> ArchivalResult:
    """
    Archive all active evaluations if a new month has begun

    Nothing happens when the store is empty, when the newest evaluation
    is from the current month (or later), or when an archive already ran
    this month. Safe to call on every page load and from concurrent
    callers: at most one of them archives.

    Args:
        session: SQLAlchemy session
        now: Reference time (current time in the archive timezone if None;
            naive values are read in the archive timezone, aware ones
            converted to it)
        dry_run: Report what would be archived without writing

    Returns:
        ArchivalResult

    Raises:
        StorageError: Reads or the archive insert failed; active store untouched
        ConsistencyError: Archive written but the purge failed
    """
    now = _localize(now)
    current = year_month(now)

    with storage_errors(session, "read latest evaluation date"):
        latest = queries.get_latest_evaluation_date(session)

    if latest is None:
        logger.debug("No active evaluations, nothing to archive")
        return ArchivalResult(archived=False, reason=NO_EVALUATIONS)

    if year_month(latest) >= current:
        logger.debug(f"Latest evaluation {latest} is in the current month, nothing to archive")
        return ArchivalResult(archived=False, reason=SAME_MONTH)

    from_month = month_key(*year_month(latest))

    with storage_errors(session, "check archive history", month=month_key(*current)):
        already = queries.archive_exists_in_month(session, *current, tz=now.tzinfo)

    if already:
        logger.debug(f"Archive already ran in {month_key(*current)}")
        return ArchivalResult(archived=False, reason=ALREADY_ARCHIVED)

    if dry_run:
        with storage_errors(session, "count active evaluations"):
            count = queries.count_evaluations(session)
        logger.info(f"Dry run: would archive {count} evaluations from {from_month}")
        return ArchivalResult(archived=False, reason=WOULD_ARCHIVE, count=count, from_month=from_month)

    logger.info(f"New month detected. Archiving evaluations from {from_month}")
    return _archive(
        session,
        now,
        trigger="auto",
        period_key=month_key(*current),
        from_month=from_month,
    )


def archive_all_evaluations(session: Session, now: Optional[datetime] = None) -> ArchivalResult:
    """
    Administrator "archive and reset": archive every active evaluation now

    Ignores the month checks; not recorded as a month claim, so the
    automatic rollover still runs at the next month boundary.
    """
    now = _localize(now)
    logger.info("Manual archive requested")
    result = _archive(session, now, trigger="manual")
    if result.archived:
        result.reason = MANUAL
    return result


def _archive(
    session: Session,
    now: datetime,
    trigger: str,
    period_key: Optional[str] = None,
    from_month: Optional[str] = None,
) -> ArchivalResult:
    # Timestamps are stored in UTC; SQLite keeps only the wall clock
    stamp = now.astimezone(timezone.utc)

    # Phase 1: claim, copy, commit
    try:
        run = ArchiveRun.start_run(
            session, trigger, started_at=stamp, period_key=period_key, from_month=from_month
        )
    except IntegrityError:
        session.rollback()
        logger.info(f"Archive for {period_key} was claimed by another caller")
        return ArchivalResult(archived=False, reason=ALREADY_ARCHIVED)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Could not start archive run: {e}")
        raise StorageError("Failed to start archive run", context={"period_key": period_key}, cause=e) from e

    try:
        evaluations = queries.list_evaluations(session)
        if not evaluations:
            session.rollback()
            return ArchivalResult(archived=False, reason=NO_EVALUATIONS)

        evaluation_ids = [ev.id for ev in evaluations]
        if run.from_month is None:
            newest = max(ev.evaluation_date for ev in evaluations)
            run.from_month = month_key(*year_month(newest))
        archived = queries.insert_archive_evaluations(session, evaluations, stamp, run)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Archive insert failed, active evaluations left untouched: {e}")
        raise StorageError(
            "Failed to copy evaluations into the archive",
            context={"period_key": period_key},
            cause=e,
        ) from e

    run_id = run.id
    from_month = run.from_month
    logger.info(f"Archived {archived} evaluations from {from_month} (run {run_id})")

    # Phase 2: purge exactly what was archived
    try:
        purged = queries.delete_all_evaluations(session, evaluation_ids)
        remaining = queries.count_evaluations(session, evaluation_ids)
        if remaining:
            raise ConsistencyError(
                f"{remaining} archived evaluations are still in the active store",
                archived_count=archived,
                purged_count=purged,
                evaluation_ids=evaluation_ids,
                archive_run_id=run_id,
            )
        run.complete(purged, completed_at=stamp)
        session.commit()
    except ConsistencyError as e:
        session.rollback()
        _record_purge_failure(session, run_id, e.purged_count, e.message)
        logger.error(f"Archive run {run_id} left {len(evaluation_ids)} evaluations in both stores")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        _record_purge_failure(session, run_id, 0, str(e))
        logger.error(
            f"Purge failed after archiving run {run_id}; "
            f"{len(evaluation_ids)} evaluations are in both stores: {e}"
        )
        raise ConsistencyError(
            "Evaluations were archived but could not be removed from the active store",
            archived_count=archived,
            purged_count=0,
            evaluation_ids=evaluation_ids,
            archive_run_id=run_id,
            cause=e,
        ) from e

    if purged != archived:
        logger.warning(
            f"Run {run_id}: archived {archived} evaluations but purged {purged}; "
            f"the rest were already deleted"
        )

    logger.info(f"Successfully archived {archived} evaluations from {from_month}")
    return ArchivalResult(
        archived=True,
        count=archived,
        from_month=from_month,
        archive_run_id=run_id,
    )


def _record_purge_failure(session: Session, run_id: int, purged: int, error_message: str) -> None:
    try:
        run = session.get(ArchiveRun, run_id)
        if run is not None:
            run.fail_purge(purged, error_message)
            session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Could not mark archive run {run_id} as purge_failed: {e}")


def list_archive_runs(session: Session, limit: int = 24) -> List[ArchiveRun]:
    """Recent archive runs, newest first."""
    with storage_errors(session, "list archive runs"):
        return queries.list_archive_runs(session, limit=limit)
