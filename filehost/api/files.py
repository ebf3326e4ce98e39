"""File API endpoints."""

from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import FileResponse

from filehost.api.dependencies import get_current_user, get_file_service, get_upload_pipeline
from filehost.config import Settings, get_settings
from filehost.models.user import User
from filehost.schemas.error import ErrorResponse
from filehost.schemas.file import FileSummary
from filehost.services.file_service import FileService
from filehost.services.multipart_reader import MultipartFileReader
from filehost.services.upload import UploadPipeline

router = APIRouter(
    prefix="/api/v1/files",
    tags=["files"],
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
)


@router.post(
    "",
    response_model=FileSummary,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        HTTPStatus.REQUEST_ENTITY_TOO_LARGE.value: {"model": ErrorResponse},
    },
)
async def upload_file(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    pipeline: Annotated[UploadPipeline, Depends(get_upload_pipeline)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Upload a file. The first multipart part carrying a filename is stored.

    The body is read straight off the connection; an oversized upload is
    rejected as soon as the ceiling is crossed.
    """
    reader = MultipartFileReader(
        request.headers.get("content-type"),
        request.stream(),
        chunk_size=settings.upload_chunk_size,
    )
    try:
        incoming = await reader.read_file()
        record = await pipeline.save(current_user.id, incoming)
    finally:
        await reader.aclose()

    return record


@router.get("", response_model=list[FileSummary])
def list_files(
    current_user: Annotated[User, Depends(get_current_user)],
    file_service: Annotated[FileService, Depends(get_file_service)],
):
    """List the current user's files, newest first."""
    return file_service.list_files(current_user.id)


@router.get("/{file_id}", response_model=FileSummary)
def get_file(
    file_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    file_service: Annotated[FileService, Depends(get_file_service)],
):
    """Get metadata for one of the current user's files."""
    return file_service.get_file(file_id, current_user.id)


@router.get("/{file_id}/download")
def download_file(
    file_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    file_service: Annotated[FileService, Depends(get_file_service)],
):
    """Download a file as an attachment."""
    record, path = file_service.open_for_download(file_id, current_user.id)
    return FileResponse(
        path,
        media_type=record.media_type,
        filename=record.original_name,
        content_disposition_type="attachment",
    )


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    file_service: Annotated[FileService, Depends(get_file_service)],
):
    """Delete a file and its stored bytes."""
    file_service.delete_file(file_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
