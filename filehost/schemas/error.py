"""Error response schema."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Uniform error body."""

    status: str
    message: str
