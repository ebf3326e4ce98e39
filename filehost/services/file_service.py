"""Owner-scoped file lookup and deletion."""

import logging
from pathlib import Path

from sqlalchemy.orm import Session

from filehost.errors import FileNotFound
from filehost.models.file import FileRecord
from filehost.services.storage import FileStorage

logger = logging.getLogger(__name__)


class FileService:
    """Service for reading and deleting a user's files."""

    def __init__(self, db: Session, storage: FileStorage):
        self.db = db
        self.storage = storage

    def list_files(self, owner_id: int) -> list[FileRecord]:
        """All files owned by ``owner_id``, newest first."""
        return (
            self.db.query(FileRecord)
            .filter(FileRecord.user_id == owner_id)
            .order_by(FileRecord.created_at.desc(), FileRecord.id.desc())
            .all()
        )

    def get_file(self, file_id: int, owner_id: int) -> FileRecord:
        """Get a file owned by ``owner_id``.

        Someone else's file and a nonexistent id raise the same ``FileNotFound``.
        """
        record = (
            self.db.query(FileRecord)
            .filter(FileRecord.id == file_id, FileRecord.user_id == owner_id)
            .first()
        )
        if record is None:
            raise FileNotFound()
        return record

    def open_for_download(self, file_id: int, owner_id: int) -> tuple[FileRecord, Path]:
        """Resolve a file and its bytes on disk."""
        record = self.get_file(file_id, owner_id)
        path = Path(record.storage_path)
        if not path.is_file():
            logger.warning(f"File {record.id} has no bytes at {path}")
            raise FileNotFound()
        return record, path

    def delete_file(self, file_id: int, owner_id: int) -> None:
        """Delete the metadata row, then the bytes on a best-effort basis."""
        record = self.get_file(file_id, owner_id)
        storage_path = record.storage_path

        self.db.delete(record)
        self.db.commit()

        # The row is gone; a leftover file is picked up by the orphan sweep
        self.storage.remove(storage_path)
        logger.info(f"Deleted file {file_id} for user {owner_id}")
