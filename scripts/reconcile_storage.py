#!/usr/bin/env python3
"""Reconcile the upload directory with the files table once.

Deletes uploaded files that no metadata row references and reports rows whose
bytes are missing. Same work as the hourly celery-beat sweep, for running by
hand.

Usage:
    # From project root:
    python scripts/reconcile_storage.py

    # Keep files younger than 10 minutes:
    python scripts/reconcile_storage.py --grace-minutes 10

    # Or against another deployment:
    DATABASE_URL=sqlite:////srv/filehost/filehost.db UPLOAD_DIR=/srv/filehost/uploads \
        python scripts/reconcile_storage.py
"""

import argparse
import os
import sys
from datetime import timedelta

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from filehost.config import get_settings
from filehost.database import SessionLocal
from filehost.services.storage import FileStorage, reconcile_storage


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--grace-minutes",
        type=int,
        default=settings.orphan_grace_minutes,
        help="skip files modified more recently than this",
    )
    args = parser.parse_args()

    storage = FileStorage.from_settings(settings)
    session = SessionLocal()
    try:
        report = reconcile_storage(session, storage, timedelta(minutes=args.grace_minutes))
    finally:
        session.close()

    print(f"Removed {len(report.removed)} orphaned file(s) from {storage.root}")
    for name in report.removed:
        print(f"  - {name}")
    if report.failed:
        print(f"Could not remove {len(report.failed)} file(s): {', '.join(report.failed)}")
    if report.missing:
        print(f"File records with missing bytes: {report.missing}")
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
