"""Flat on-disk storage for uploaded file bytes."""

import logging
import re
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from sqlalchemy.orm import Session

from filehost.config import Settings
from filehost.models.file import FileRecord

logger = logging.getLogger(__name__)

MAX_EXTENSION_LENGTH = 16
_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]+$")


def extension_from_filename(filename: str) -> str:
    """Return ``.ext`` from a client filename, or ``""`` if it has no safe one."""
    suffix = Path(filename.replace("\\", "/")).suffix
    ext = suffix[1:]
    if not ext or len(ext) > MAX_EXTENSION_LENGTH or not _EXTENSION_RE.match(ext):
        return ""
    return f".{ext}"


@dataclass
class SweepReport:
    """Outcome of a reconciliation pass over the upload directory."""

    removed: list[str] = field(default_factory=list)
    missing: list[int] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class FileStorage:
    """One directory holding every upload under its generated stored name."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileStorage":
        return cls(settings.upload_dir)

    def ensure_directory(self) -> None:
        """Create the upload directory if it is missing."""
        self.root.mkdir(parents=True, exist_ok=True)

    def allocate_name(self, original_name: str) -> str:
        """Generate a fresh stored name keeping only the original extension."""
        return f"{uuid.uuid4()}{extension_from_filename(original_name)}"

    def path_for(self, stored_name: str) -> Path:
        return self.root / stored_name

    def remove(self, path: str | Path) -> bool:
        """Delete a stored file, logging instead of raising on failure."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.warning(f"Stored file {path} was already gone")
            return False
        except OSError as e:
            logger.warning(f"Failed to remove stored file {path}: {e}")
            return False
        return True

    def sweep_orphans(self, known_names: Iterable[str], older_than: timedelta) -> SweepReport:
        """Remove files with no metadata row that are older than ``older_than``.

        Younger files are left alone since they may belong to uploads still
        being written.
        """
        report = SweepReport()
        if not self.root.is_dir():
            return report

        known = set(known_names)
        cutoff = time.time() - older_than.total_seconds()
        for entry in self.root.iterdir():
            if not entry.is_file() or entry.name in known:
                continue
            try:
                if entry.stat().st_mtime > cutoff:
                    continue
            except FileNotFoundError:
                continue
            if self.remove(entry):
                report.removed.append(entry.name)
            else:
                report.failed.append(entry.name)
        return report


def reconcile_storage(db: Session, storage: FileStorage, grace: timedelta) -> SweepReport:
    """Compare the upload directory with the ``files`` table.

    Orphaned files are deleted; rows whose bytes are missing are only logged,
    the metadata stays authoritative.
    """
    records = db.query(FileRecord.id, FileRecord.stored_name, FileRecord.storage_path).all()
    report = storage.sweep_orphans((r.stored_name for r in records), grace)

    for record in records:
        if not Path(record.storage_path).is_file():
            report.missing.append(record.id)

    if report.removed:
        logger.info(f"Removed {len(report.removed)} orphaned upload(s)")
    if report.missing:
        logger.warning(f"File records with missing bytes: {report.missing}")
    return report
