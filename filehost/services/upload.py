"""Streaming upload pipeline.

An upload moves through ``UploadState``: the directory is made ready, the file
part is opened, its chunks are streamed to a freshly named file while the byte
count is checked against the ceiling, and only then is the metadata row
written. Any failure after streaming starts removes the partial file.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import aiofiles
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filehost.config import Settings
from filehost.errors import FileNameTooLong, FileTooLarge, InvalidFileType, StorageError
from filehost.models.file import FileRecord
from filehost.services.storage import FileStorage, extension_from_filename

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MiB
CHUNK_SIZE = 64 * 1024
MAX_ORIGINAL_NAME_LENGTH = 255


class UploadState(str, Enum):
    """Lifecycle of a single upload."""

    START = "start"
    DIRECTORY_READY = "directory_ready"
    FIELD_OPENED = "field_opened"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    ABORTED = "aborted"


@dataclass
class IncomingFile:
    """One multipart file part, exposed as a stream of byte chunks."""

    filename: str
    content_type: str | None
    chunks: AsyncIterator[bytes]


class UploadPipeline:
    """Writes one uploaded file to disk and records it for its owner."""

    def __init__(
        self,
        db: Session,
        storage: FileStorage,
        max_bytes: int = MAX_FILE_SIZE,
        allowed_extensions: list[str] | None = None,
    ):
        self.db = db
        self.storage = storage
        self.max_bytes = max_bytes
        self.allowed_extensions = (
            {ext.lower().lstrip(".") for ext in allowed_extensions}
            if allowed_extensions is not None
            else None
        )
        self.state = UploadState.START

    @classmethod
    def from_settings(cls, db: Session, settings: Settings) -> "UploadPipeline":
        return cls(
            db,
            FileStorage.from_settings(settings),
            max_bytes=settings.max_upload_bytes,
            allowed_extensions=settings.allowed_extensions,
        )

    def _transition(self, state: UploadState) -> None:
        logger.debug(f"Upload {self.state.value} -> {state.value}")
        self.state = state

    def _check_extension(self, filename: str) -> None:
        if self.allowed_extensions is None:
            return
        ext = extension_from_filename(filename).lstrip(".").lower()
        if ext not in self.allowed_extensions:
            raise InvalidFileType(f"Invalid file type: '{ext or filename}' is not allowed")

    def _check_filename(self, filename: str) -> None:
        if len(filename) > MAX_ORIGINAL_NAME_LENGTH:
            raise FileNameTooLong(
                f"File name too long: limit is {MAX_ORIGINAL_NAME_LENGTH} characters"
            )
        self._check_extension(filename)

    async def save(self, user_id: int, incoming: IncomingFile) -> FileRecord:
        """Stream ``incoming`` to disk and insert its metadata row.

        Database and filesystem calls other than the chunk writes run in a
        worker thread.

        Raises:
            FileNameTooLong: the client filename does not fit the metadata row.
            InvalidFileType: extension rejected by the allow-list.
            FileTooLarge: more than ``max_bytes`` were sent.
            StorageError: disk or database failure.
        """
        try:
            await asyncio.to_thread(self.storage.ensure_directory)
        except OSError as e:
            raise StorageError(f"IO error: {e}") from e
        self._transition(UploadState.DIRECTORY_READY)

        self._check_filename(incoming.filename)
        stored_name = self.storage.allocate_name(incoming.filename)
        path = self.storage.path_for(stored_name)
        media_type = incoming.content_type or DEFAULT_MEDIA_TYPE
        self._transition(UploadState.FIELD_OPENED)

        size = await self._stream_to_disk(incoming.chunks, path)

        record = FileRecord(
            user_id=user_id,
            stored_name=stored_name,
            original_name=incoming.filename,
            media_type=media_type,
            size_bytes=size,
            storage_path=str(path),
        )
        try:
            await asyncio.to_thread(self._insert, record)
        except SQLAlchemyError as e:
            await self._abort(path)
            raise StorageError(f"Database error: {e}") from e

        self._transition(UploadState.FINALIZED)
        logger.info(f"Stored file {record.id} ({size} bytes) for user {user_id} as {stored_name}")
        return record

    def _insert(self, record: FileRecord) -> None:
        self.db.add(record)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(record)

    async def _stream_to_disk(self, chunks: AsyncIterator[bytes], path: Path) -> int:
        size = 0
        self._transition(UploadState.STREAMING)
        try:
            async with aiofiles.open(path, "wb") as out:
                async for chunk in chunks:
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise FileTooLarge(
                            f"File too large: limit is {self.max_bytes} bytes"
                        )
                    await out.write(chunk)
        except FileTooLarge:
            logger.warning(f"Upload to {path.name} exceeded {self.max_bytes} bytes, aborting")
            await self._abort(path)
            raise
        except OSError as e:
            await self._abort(path)
            raise StorageError(f"IO error: {e}") from e
        except Exception:
            await self._abort(path)
            raise
        return size

    async def _abort(self, path: Path) -> None:
        self._transition(UploadState.ABORTED)
        await asyncio.to_thread(self._discard, path)

    def _discard(self, path: Path) -> None:
        if path.exists():
            self.storage.remove(path)
