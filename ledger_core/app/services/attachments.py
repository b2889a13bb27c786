"""
Attachment storage for vendor transaction records.

Uploaded bytes go to a ``.part`` file under the upload directory and are
renamed into place only when the whole stream was written and accepted.
Any failure removes the partial file. Disk writes run in the threadpool so
the event loop keeps serving while a large upload is written.
"""

import os
import re
import secrets
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..logging_config import get_logger
from .errors import ValidationFailed

logger = get_logger("attachments")

CHUNK_SIZE = 64 * 1024
ALLOWED_TYPES = re.compile(r"jpeg|jpg|png|gif|pdf")
ALLOWED_TYPES_MESSAGE = "Only images (JPEG, JPG, PNG, GIF) and PDF files are allowed!"


@dataclass(frozen=True)
class StoredFile:
    filename: str
    path: str


class AttachmentStore:

    def __init__(self, root: Path, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def _ensure_root(self) -> None:
        # created lazily, the first time something is stored
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def check_type(filename: Optional[str], content_type: Optional[str]) -> str:
        """Return the lower-cased extension, or raise if the upload is not an image/PDF."""
        extension = Path(filename or "").suffix.lower()
        if not ALLOWED_TYPES.search(extension) or not ALLOWED_TYPES.search(content_type or ""):
            raise ValidationFailed(ALLOWED_TYPES_MESSAGE)
        return extension

    @contextmanager
    def _partial_file(self, final_path: Path) -> Iterator:
        partial_path = final_path.with_name(final_path.name + ".part")
        handle = open(partial_path, "wb")
        try:
            yield handle
            handle.close()
            os.replace(partial_path, final_path)
        except BaseException:
            handle.close()
            partial_path.unlink(missing_ok=True)
            raise

    async def save(self, upload: UploadFile, field_name: str) -> StoredFile:
        """
        Stream `upload` to disk as ``<field>-<millis>-<random><ext>``.

        Raises:
            ValidationFailed: wrong file type or larger than max_bytes
        """
        extension = self.check_type(upload.filename, upload.content_type)
        await run_in_threadpool(self._ensure_root)

        filename = f"{field_name}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"
        final_path = self.root / filename

        written = 0
        with self._partial_file(final_path) as handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self.max_bytes:
                    raise ValidationFailed(
                        f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB"
                    )
                await run_in_threadpool(handle.write, chunk)

        logger.info("Stored attachment %s (%s bytes)", filename, written)
        return StoredFile(filename=filename, path=str(final_path))

    @staticmethod
    def exists(path: Optional[str]) -> bool:
        return bool(path) and os.path.exists(path)

    def remove(self, path: Optional[str]) -> None:
        if self.exists(path):
            os.remove(path)
            logger.info("Removed attachment %s", path)
