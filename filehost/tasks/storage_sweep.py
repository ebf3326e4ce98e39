"""Celery task that reconciles the upload directory with file metadata."""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from filehost.celery_app import app as celery_app
from filehost.config import get_settings
from filehost.database import SessionLocal
from filehost.services.storage import FileStorage, reconcile_storage

logger = logging.getLogger(__name__)


@celery_app.task
def sweep_orphaned_uploads() -> dict:
    """Delete uploaded files that no metadata row points at.

    This task runs hourly via celery-beat. Files younger than
    ``ORPHAN_GRACE_MINUTES`` are skipped so in-flight uploads survive.

    Returns:
        dict with removed stored names, failed removals and ids of rows
        whose bytes are missing
    """
    settings = get_settings()
    storage = FileStorage.from_settings(settings)
    grace = timedelta(minutes=settings.orphan_grace_minutes)

    db: Session = SessionLocal()
    try:
        report = reconcile_storage(db, storage, grace)
    finally:
        db.close()

    logger.info(
        f"Storage sweep: removed={len(report.removed)} failed={len(report.failed)} "
        f"missing={len(report.missing)}"
    )
    return {
        "removed": report.removed,
        "failed": report.failed,
        "missing": report.missing,
    }
