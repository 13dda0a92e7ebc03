"""File storage service for ShareHub.

Handles file storage on disk and metadata tracking in DuckDB.
Files are stored in: {upload_dir}/{uuid}{ext}
"""
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import duckdb

from sharehub.config import get_config

from .schemas import FileMetadata

logger = logging.getLogger(__name__)

# Stored names are always "<32 hex chars><ext>"; anything else is rejected
_STORED_NAME_RE = re.compile(r"^[0-9a-f]{32}(\.[A-Za-z0-9]{1,16})?$")

_SELECT_COLUMNS = """
    SELECT id, original_filename, stored_filename, mime_type,
           size_bytes, uploaded_by, uploaded_at
    FROM file_metadata
"""


class FileStorageService:
    """Service for managing file uploads and storage."""

    _instance: Optional["FileStorageService"] = None

    def __init__(
        self,
        upload_dir: str,
        db_path: str,
        max_file_size_bytes: int,
    ):
        """Initialize the file storage service."""
        self._upload_dir = upload_dir
        self._db_path = db_path
        self.max_file_size_bytes = max_file_size_bytes

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._ensure_upload_dir()
        self._initialize_db()

    @classmethod
    def get_instance(
        cls,
        upload_dir: Optional[str] = None,
        db_path: Optional[str] = None,
        max_file_size_bytes: Optional[int] = None,
    ) -> "FileStorageService":
        """Get or create the singleton instance.

        Arguments override the configured values and only apply on first call.
        """
        if cls._instance is None:
            uploads = get_config().uploads
            cls._instance = cls(
                upload_dir=upload_dir or uploads.upload_dir,
                db_path=db_path or uploads.db_path,
                max_file_size_bytes=max_file_size_bytes or uploads.max_file_size_bytes,
            )
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        if cls._instance and cls._instance._connection:
            cls._instance._connection.close()
        cls._instance = None

    def _ensure_upload_dir(self) -> None:
        """Ensure the upload directory exists."""
        Path(self._upload_dir).mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Initialize the database schema."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS file_metadata (
                id VARCHAR PRIMARY KEY,
                original_filename VARCHAR NOT NULL,
                stored_filename VARCHAR NOT NULL UNIQUE,
                mime_type VARCHAR NOT NULL,
                size_bytes BIGINT NOT NULL,
                uploaded_by VARCHAR,
                uploaded_at TIMESTAMP NOT NULL
            )
        """)

    async def save_file(
        self,
        filename: str,
        content: bytes,
        mime_type: str,
        uploaded_by: Optional[str] = None,
    ) -> FileMetadata:
        """Save an uploaded file to disk and record metadata.

        Args:
            filename: Original filename
            content: File content as bytes
            mime_type: MIME type of the file
            uploaded_by: Optional connection ID of the uploader

        Returns:
            FileMetadata object with file information

        Raises:
            ValueError: If file exceeds size limit
        """
        size_bytes = len(content)
        if size_bytes > self.max_file_size_bytes:
            raise ValueError(
                f"File size ({size_bytes} bytes) exceeds limit "
                f"({self.max_file_size_bytes} bytes)"
            )

        # Generate unique filename, keeping the original extension
        file_id = uuid.uuid4().hex
        ext = Path(filename).suffix.lower()
        if not _STORED_NAME_RE.match(f"{file_id}{ext}"):
            ext = ""
        stored_filename = f"{file_id}{ext}"

        file_path = Path(self._upload_dir) / stored_filename
        file_path.write_bytes(content)

        logger.info(f"Saved file: {file_path} ({size_bytes} bytes)")

        metadata = FileMetadata(
            id=file_id,
            original_filename=filename,
            stored_filename=stored_filename,
            mime_type=mime_type,
            size_bytes=size_bytes,
            uploaded_by=uploaded_by,
        )

        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO file_metadata
            (id, original_filename, stored_filename, mime_type,
             size_bytes, uploaded_by, uploaded_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                metadata.id,
                metadata.original_filename,
                metadata.stored_filename,
                metadata.mime_type,
                metadata.size_bytes,
                metadata.uploaded_by,
                datetime.fromtimestamp(metadata.uploaded_at),
            ]
        )

        return metadata

    def get_file(self, stored_filename: str) -> Optional[FileMetadata]:
        """Get file metadata by stored filename."""
        if not _STORED_NAME_RE.match(stored_filename):
            return None

        conn = self._get_connection()
        result = conn.execute(
            _SELECT_COLUMNS + " WHERE stored_filename = ?",
            [stored_filename]
        ).fetchone()

        if not result:
            return None
        return self._row_to_metadata(result)

    def get_file_path(self, stored_filename: str) -> Optional[Path]:
        """Get the file path on disk for a stored filename."""
        metadata = self.get_file(stored_filename)
        if not metadata:
            return None

        file_path = Path(self._upload_dir) / metadata.stored_filename
        if not file_path.exists():
            return None

        return file_path

    @staticmethod
    def _row_to_metadata(row) -> FileMetadata:
        return FileMetadata(
            id=row[0],
            original_filename=row[1],
            stored_filename=row[2],
            mime_type=row[3],
            size_bytes=row[4],
            uploaded_by=row[5],
            uploaded_at=row[6].timestamp() if row[6] else 0,
        )
