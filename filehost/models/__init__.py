"""SQLAlchemy models."""

from filehost.models.file import FileRecord
from filehost.models.user import User

__all__ = [
    "User",
    "FileRecord",
]
