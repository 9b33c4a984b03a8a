"""
Volunteer API — File Storage Service
=====================================

What:  Validates and stores uploaded files under the two public upload
       directories.
Why:   Upload handling is the only place user input becomes a path on disk;
       it must never be able to choose that path.
How:   One FileService per directory, each with its own allowed extensions:
         uploads/      profile images                 (served at /uploads)
         uploadsfile/  activity and planning documents (served at /uploadsfile)
       Files land in date-organized subdirectories under a UUID name.

Security Model:
    1. Extension check: allow-list per directory
    2. Size check:      MAX_UPLOAD_SIZE, against the bytes actually received
    3. UUID filename:   no user input ever reaches the path
    The body limiter already bounded the multipart request as a whole.

Directory Structure:
    uploadsfile/
    └── 2025/
        └── 03/
            └── 14/
                └── a1b2c3d4-....pdf
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, Tuple

import aiofiles

from volunteer_api.config import settings
from volunteer_api.exceptions import DataValidationError, FileStorageError

logger = logging.getLogger(__name__)

UPLOAD_DIRECTORIES = ("uploads", "uploadsfile")

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})
DOCUMENT_EXTENSIONS = IMAGE_EXTENSIONS | frozenset(
    {".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".csv"}
)


class FileService:
    """
    Stores files below one directory.

    Args:
        directory:    Storage root (created on first write)
        extensions:   Allowed lowercase extensions, dot included
        max_size:     Largest accepted file in bytes
    """

    def __init__(self, directory: Path, extensions: FrozenSet[str], max_size: int):
        self.directory = Path(directory)
        self.extensions = extensions
        self.max_size = max_size

    def validate_extension(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in self.extensions:
            raise DataValidationError(
                errors=[f"file: type '{ext or filename}' is not allowed ({', '.join(sorted(self.extensions))})"],
                context={"extension": ext},
            )
        return ext

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise DataValidationError(errors=["file: the uploaded file is empty"])
        if size > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise DataValidationError(
                errors=[f"file: size exceeds maximum of {max_mb:.0f}MB"],
                context={"size": size, "max_size": self.max_size},
            )

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.directory / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """Writes `content`; returns the path relative to the directory."""
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            raise FileStorageError(context={"path": str(absolute_path), "os_error": str(e)}) from e

        logger.info("File stored: %s/%s (%d bytes)", self.directory.name, relative_path, len(content))
        return relative_path

    async def cleanup_file(self, relative_path: str) -> None:
        """Best-effort removal, used when the database write after a store fails."""
        path = self.directory / relative_path
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", path, e)

    async def validate_and_store(self, filename: str, content: bytes) -> str:
        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        return await self.store_file(content, ext)


def upload_directory(name: str) -> Path:
    return Path(settings.upload_root) / name


profile_images = FileService(upload_directory("uploads"), IMAGE_EXTENSIONS, settings.max_upload_size)
documents = FileService(upload_directory("uploadsfile"), DOCUMENT_EXTENSIONS, settings.max_upload_size)
