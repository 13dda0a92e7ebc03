"""FastAPI router for file upload endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from .schemas import FileUploadResponse
from .service import FileStorageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


def get_download_url(stored_filename: str) -> str:
    """Relative URL a client can fetch the stored file from."""
    return f"/uploads/{stored_filename}"


@router.post("/upload", response_model=FileUploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    connection_id: Optional[str] = Form(None, alias="connectionId"),
):
    """Upload a file for sharing in chat.

    Args:
        file: The file to upload (multipart field ``file``)
        connection_id: Optional connection ID of the uploader

    Returns:
        FileUploadResponse with the download URL and original filename

    Raises:
        HTTPException 400: If no file was sent
        HTTPException 413: If the file exceeds the configured size limit
        HTTPException 500: If the upload fails
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    service = FileStorageService.get_instance()
    try:
        content = await file.read()

        # Check size before processing
        if len(content) > service.max_file_size_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File size exceeds limit of {service.max_file_size_bytes} bytes"
            )

        metadata = await service.save_file(
            filename=file.filename or "unnamed",
            content=content,
            mime_type=file.content_type or "application/octet-stream",
            uploaded_by=connection_id,
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except Exception as e:
        logger.error(f"File upload failed: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")

    logger.info(
        f"File uploaded: {metadata.original_filename} "
        f"({metadata.size_bytes} bytes) as {metadata.stored_filename}"
    )

    return FileUploadResponse(
        url=get_download_url(metadata.stored_filename),
        originalName=metadata.original_filename,
        size=metadata.size_bytes,
    )


@router.get("/uploads/{stored_filename}")
async def download_file(stored_filename: str):
    """Download a file by its stored filename.

    Raises:
        HTTPException 404: If file not found
    """
    service = FileStorageService.get_instance()

    metadata = service.get_file(stored_filename)
    if not metadata:
        raise HTTPException(status_code=404, detail="File not found")

    file_path = service.get_file_path(stored_filename)
    if not file_path:
        raise HTTPException(status_code=404, detail="File not found on disk")

    return FileResponse(
        path=file_path,
        filename=metadata.original_filename,
        media_type=metadata.mime_type,
    )
