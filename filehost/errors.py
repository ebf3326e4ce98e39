"""Domain errors and their HTTP rendering.

Every error raised by the services derives from ``AppError`` and carries the
status code it maps to. ``register_exception_handlers`` renders them, along
with routing and validation errors, as ``{"status": ..., "message": ...}``.
"""

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


# Auth domain


class AuthError(AppError):
    """Authentication failure; bare instances wrap lower-level errors (500)."""

    message = "Authentication error"


class InvalidCredentials(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class UserAlreadyExists(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "User already exists"


class UserNotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class MissingToken(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Token is missing"


class InvalidToken(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid token"


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class ClaimParseError(AuthError):
    message = "Parse error: subject claim is not a numeric id"


# File domain


class FileError(AppError):
    """File operation failure; bare instances wrap lower-level errors (500)."""

    message = "File error"


class FileNotFound(FileError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "File not found"


class UnauthorizedFileAccess(FileError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized access"


class InvalidFileType(FileError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid file type"


class FileTooLarge(FileError):
    status_code = HTTPStatus.REQUEST_ENTITY_TOO_LARGE.value
    message = "File too large"


class NoFileUploaded(FileError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No file uploaded"


class FileNameTooLong(FileError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "File name too long"


class StorageError(FileError):
    message = "Storage error"


def error_body(status_code: int, message: str) -> dict[str, str]:
    """Build the uniform error payload."""
    return {
        "status": f"{status_code} {HTTPStatus(status_code).phrase}",
        "message": message,
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail),
        headers=headers,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} database error: {exc}", exc_info=exc)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=error_body(code, "Database error"))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) in the uniform body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=exc.headers,
    )


def describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Validation error: " + "; ".join(parts)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    code = HTTPStatus.UNPROCESSABLE_ENTITY.value
    return JSONResponse(status_code=code, content=error_body(code, describe_validation_errors(exc)))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that render every error as ``{status, message}``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
