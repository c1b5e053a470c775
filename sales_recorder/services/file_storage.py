"""
Local storage for uploaded recordings.
"""
import logging
import os
import random
import time
from typing import Optional

from fastapi import UploadFile

from sales_recorder.core.config import settings
from sales_recorder.core.exceptions import AppException

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_EXTENSION = ".webm"


class FileTooLargeError(AppException):
    status_code = 413
    error_code = "file_too_large"


def generate_filename(original_name: Optional[str], now: Optional[float] = None) -> str:
    """call_<epoch ms>_<random>.<ext>, keeping the upload's extension."""
    now = time.time() if now is None else now
    ext = os.path.splitext(original_name or "")[1].lower() or DEFAULT_EXTENSION
    return f"call_{int(now * 1000)}_{random.randint(0, 10**9 - 1)}{ext}"


class FileStorageService:
    """Writes uploads under the configured directory."""

    def __init__(self, upload_dir: Optional[str] = None, max_size_bytes: Optional[int] = None):
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        self.max_size_bytes = max_size_bytes or settings.max_upload_size_bytes

    async def save_upload(self, file: UploadFile) -> str:
        """
        Stream the upload to disk and return its path.
        Raises FileTooLargeError and removes the partial file past the size limit.
        """
        os.makedirs(self.upload_dir, exist_ok=True)
        path = os.path.join(self.upload_dir, generate_filename(file.filename))

        written = 0
        with open(path, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self.max_size_bytes:
                    out.close()
                    os.remove(path)
                    raise FileTooLargeError(
                        f"File too large. Maximum size is {self.max_size_bytes // (1024 * 1024)}MB.",
                        details={"max_size_bytes": self.max_size_bytes},
                    )
                out.write(chunk)

        logger.info(f"Stored upload {file.filename} as {path} ({written} bytes)")
        return path
