"""Mark classification jobs that never reached a terminal state as failed."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.classification_records import ClassificationRecords, utcnow
from app.services.job_lifecycle import InvalidJobTransitionError, JobStatus


logger = logging.getLogger(__name__)

STALE_JOB_MESSAGE = "stale job reaped"


def reap_stale_jobs(db: Session, timeout_sec: int, now: datetime | None = None) -> int:
    cutoff = (now or utcnow()) - timedelta(seconds=timeout_sec)
    records = ClassificationRecords(db)
    reaped = 0
    for job in records.list_stale_jobs(cutoff):
        logger.warning("Reaping job %s stuck in %s", job.id, job.status)
        try:
            records.transition_job(job, JobStatus.FAILED, error_message=STALE_JOB_MESSAGE)
        except InvalidJobTransitionError:
            # Finished between the query and the update.
            continue
        reaped += 1
    return reaped


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fail classification jobs stuck in pending/processing")
    parser.add_argument(
        "--older-than",
        type=int,
        default=settings.stale_job_timeout_sec,
        help="Age in seconds after which a non-terminal job counts as stale",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    db = SessionLocal()
    try:
        count = reap_stale_jobs(db, args.older_than)
        logger.info("Reaped %s stale job(s)", count)
    finally:
        db.close()


if __name__ == "__main__":
    main()
