#!/usr/bin/env python3
"""
Run the monthly archival check.

Archives every active evaluation when a new month has begun since the
newest one. Idempotent: repeated runs in the same month do nothing.
Suitable for cron alongside the opportunistic check the app performs.

Usage:
    ecoscore-archive-check [--now 2024-04-02T08:00:00] [--dry-run] [-v]

Exit codes:
    0  Checked (archived or nothing to do)
    1  Storage failure; active evaluations untouched
    2  Archived but not purged; manual reconciliation needed
"""

import argparse
import json
import logging
import sys
from datetime import datetime

from ecoscore.database.connection import get_session, init_db
from ecoscore.errors import ConsistencyError, EcoScoreError
from ecoscore.services.archival import run_archival_check

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Archive active evaluations when a new month has begun"
    )
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Reference time (ISO 8601); defaults to now in the archive timezone"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be archived without writing"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    init_db()
    session = get_session()
    try:
        result = run_archival_check(session, now=args.now, dry_run=args.dry_run)
    except ConsistencyError as e:
        logger.error(
            f"{e.message}: archived {e.archived_count}, purged {e.purged_count}, "
            f"run {e.archive_run_id}. Evaluation ids: {', '.join(e.evaluation_ids)}"
        )
        return 2
    except EcoScoreError as e:
        logger.error(f"Archival check failed: {e.message}", exc_info=True)
        return 1
    finally:
        session.close()

    print(json.dumps(result.to_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
