"""Stored file metadata model."""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String

from filehost.database import Base
from filehost.models.mixins import CreatedAtMixin


class FileRecord(Base, CreatedAtMixin):
    """Metadata for one uploaded file; the bytes live at storage_path."""

    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stored_name = Column(String(64), unique=True, nullable=False)  # uuid4 + extension
    original_name = Column(String(255), nullable=False)
    media_type = Column(String(255), nullable=False, default="application/octet-stream")
    size_bytes = Column(BigInteger, nullable=False)
    storage_path = Column(String(1024), nullable=False)
