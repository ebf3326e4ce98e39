"""User model."""

from sqlalchemy import Column, Integer, String

from filehost.database import Base
from filehost.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User model for authentication and file ownership."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
