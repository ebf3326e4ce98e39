"""FastAPI dependencies for authentication, storage and services."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from filehost.config import Settings, get_settings
from filehost.database import get_db
from filehost.models.user import User
from filehost.services.auth import resolve_user
from filehost.services.file_service import FileService
from filehost.services.storage import FileStorage
from filehost.services.tokens import TokenService
from filehost.services.upload import UploadPipeline


def get_token_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenService:
    """Get the token service configured from settings."""
    return TokenService.from_settings(settings)


def get_file_storage(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FileStorage:
    """Get the upload directory storage."""
    return FileStorage.from_settings(settings)


def get_current_user(
    db: Annotated[Session, Depends(get_db)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Get the current authenticated user from the bearer token."""
    return resolve_user(db, token_service, authorization)


def get_file_service(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
) -> FileService:
    """Get file service with dependencies."""
    return FileService(db, storage)


def get_upload_pipeline(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UploadPipeline:
    """Get a fresh upload pipeline for one request."""
    return UploadPipeline.from_settings(db, settings)
