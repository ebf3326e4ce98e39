"""File schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class FileSummary(BaseModel):
    """File metadata returned to the owner."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    stored_name: str
    original_name: str
    media_type: str
    size_bytes: int
    created_at: datetime
