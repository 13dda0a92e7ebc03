"""Pydantic schemas for file upload functionality.

- FileMetadata: Complete file information stored in DuckDB
- FileUploadResponse: API response after a successful upload

Files are stored flat in the upload directory with UUID-based filenames
that keep the original extension, so two uploads never collide.
"""
import time
import uuid
from typing import Optional

from pydantic import BaseModel, Field


class FileMetadata(BaseModel):
    """Metadata for an uploaded file.

    Holds both the original filename (for display and download) and the
    stored filename (UUID-based, for disk storage and URLs).
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique file ID")
    original_filename: str = Field(..., description="Original filename")
    stored_filename: str = Field(..., description="Filename on disk (UUID-based)")
    mime_type: str = Field(..., description="MIME type of the file")
    size_bytes: int = Field(..., description="File size in bytes")
    uploaded_by: Optional[str] = Field(None, description="Connection ID of the uploader, if given")
    uploaded_at: float = Field(default_factory=time.time, description="Upload timestamp")


class FileUploadResponse(BaseModel):
    """Response after successful file upload.

    Clients put ``url`` and ``originalName`` into the ``fileRef`` of a
    ``chat_message`` with ``kind: "file"``.
    """
    url: str = Field(..., description="URL to download the file")
    originalName: str = Field(..., description="Original filename")
    size: int = Field(..., description="File size in bytes")
