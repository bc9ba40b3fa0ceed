# summary_desk/services/uploads.py
"""Signed upload URLs for new PDFs.

The client PUTs the raw file straight to the blob store. After handing out a
URL we schedule a short-delay existence check so failed uploads show up in the
logs; that check is owned by a task group and cancelled on shutdown.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from summary_desk.config import settings
from summary_desk.core.storage.blob_store import BlobStore
from summary_desk.core.tasks import OwnedTasks
from summary_desk.exceptions import ConflictError, InvalidFilenameError, StoreError
from summary_desk.services import keys
from summary_desk.utils.logging import logger

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class UploadTicket:
    upload_url: str
    key: str


def validate_filename(filename: str) -> str:
    """Return the filename stripped of surrounding whitespace, or raise InvalidFilenameError."""
    name = (filename or "").strip()
    if not name:
        raise InvalidFilenameError("Filename is required", operation="upload_url")
    if len(name) > settings.max_filename_length:
        raise InvalidFilenameError(
            f"Filename too long (max {settings.max_filename_length} characters)",
            operation="upload_url", key=name,
        )
    if "/" in name or "\\" in name or name in (".", ".."):
        raise InvalidFilenameError("Filename must not contain path separators", operation="upload_url", key=name)
    # The catalog only lists keys ending in lowercase ".pdf"
    if not keys.is_pdf_key(name) or name == keys.PDF_SUFFIX:
        raise InvalidFilenameError("Only .pdf files can be uploaded", operation="upload_url", key=name)
    return name


class UploadService:
    def __init__(self, store: BlobStore, tasks: Optional[OwnedTasks] = None,
                 verify_delay: Optional[float] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.store = store
        self.tasks = tasks
        self.verify_delay = settings.upload_verify_delay_seconds if verify_delay is None else verify_delay
        self.sleep = sleep

    async def request_upload_url(self, filename: str) -> UploadTicket:
        """
        Issue a signed PUT URL for uploads/<filename>.

        Raises:
            InvalidFilenameError: Empty, too long, nested, or not a .pdf
            ConflictError: uploads/<filename> already exists (no URL is issued)
        """
        name = validate_filename(filename)
        key = keys.upload_key(name)

        if await asyncio.to_thread(self.store.exists, key):
            logger.info("Upload rejected, file exists", extra={"key": key})
            raise ConflictError("A file with this name already exists", operation="upload_url", key=key)

        upload_url = self.store.presign_upload(key, PDF_CONTENT_TYPE)
        logger.info("Generated upload URL", extra={
            "key": key,
            "content_type": PDF_CONTENT_TYPE,
            "expires": settings.presign_expiry_seconds,
        })

        if self.tasks is not None and not self.tasks.closed:
            self.tasks.spawn(self.verify_upload(key), name=f"verify-upload:{key}")
        return UploadTicket(upload_url=upload_url, key=key)

    async def verify_upload(self, key: str) -> bool:
        """Wait for the client to finish its PUT, then check the object landed."""
        await self.sleep(self.verify_delay)
        try:
            found = await asyncio.to_thread(self.store.exists, key)
        except StoreError as e:
            logger.error("Upload verification failed", extra={"key": key, "error": str(e)})
            return False
        if found:
            logger.info("Upload verified successfully", extra={"key": key})
        else:
            logger.warning("Upload not found after verification delay", extra={"key": key})
        return found
