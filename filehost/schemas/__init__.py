"""Pydantic schemas for API requests and responses."""

from filehost.schemas.auth import LoginResponse, UserLogin, UserRegister, UserResponse
from filehost.schemas.error import ErrorResponse
from filehost.schemas.file import FileSummary

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "LoginResponse",
    "FileSummary",
    "ErrorResponse",
]
