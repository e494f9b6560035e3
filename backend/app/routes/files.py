"""
Agora Backend: File Route Handlers
===================================

What:  Upload post attachments and serve stored files.

Endpoints:
    POST /api/files/posts                  upload an attachment (unassociated)
    GET  /api/files/{category}/{filename}  serve a stored avatar or attachment

Security:
    The filename is resolved by the storage path resolver, which rejects
    anything but a single plain path segment; `category` must be one of the
    managed categories. No client-supplied path reaches the filesystem.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from app.dependencies import get_association_service, get_current_user_id, get_file_service
from app.exceptions import NotFoundError
from app.schemas.common import ErrorResponse
from app.schemas.file import FileRecordResponse
from app.services.association_service import AssociationService
from app.services.file_service import FileService
from app.services.storage_paths import FileCategory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.post(
    "/posts",
    status_code=201,
    response_model=FileRecordResponse,
    dependencies=[Depends(get_current_user_id)],
    responses={
        400: {"description": "Invalid file type or size", "model": ErrorResponse},
        500: {"description": "File could not be stored", "model": ErrorResponse},
    },
    summary="Upload a post attachment",
    description=(
        "Upload an image (PNG, JPG, JPEG) to attach to a post. Pass the returned id "
        "as file_id to POST /api/posts. Uploads never attached are purged."
    ),
)
async def upload_post_attachment(
    file: UploadFile = File(..., description="Image file (PNG, JPG or JPEG)"),
    associations: AssociationService = Depends(get_association_service),
) -> FileRecordResponse:
    content = await file.read()
    logger.info(
        "Received attachment upload: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )
    try:
        record = await associations.store_post_attachment(
            filename=file.filename or "upload.jpg",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()
    return FileRecordResponse.model_validate(record)


@router.get(
    "/{category}/{filename}",
    responses={
        200: {"description": "Stored image"},
        400: {"description": "Invalid filename", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve a stored file",
)
async def serve_file(
    category: FileCategory,
    filename: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    path = files.resolver.resolve(category, filename)
    if not await files.exists(category, filename):
        raise NotFoundError(resource="file", resource_id=filename)

    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
