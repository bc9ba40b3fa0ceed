# summary_desk/services/deletion.py
"""Deletes a PDF and, when it has one, its summary.

The PDF delete is the operation of record. A failed summary delete is logged
and reported but never rolls back or fails the PDF delete.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from summary_desk.config import settings
from summary_desk.core.storage.blob_store import BlobStore
from summary_desk.exceptions import NotFoundError, StoreError, SummaryDeskError
from summary_desk.services import keys
from summary_desk.utils.logging import logger


@dataclass
class DeletionResult:
    pdf_key: str
    summary_key: Optional[str] = None
    summary_deleted: bool = False
    summary_error: Optional[str] = None
    anomalies: List[str] = field(default_factory=list)


class DeletionCoordinator:
    def __init__(self, store: BlobStore, verify: bool = True):
        self.store = store
        self.verify = verify

    def delete_document(self, pdf_path: str, has_summary: bool = False) -> DeletionResult:
        """Delete uploads/<name> and optionally summaries/<base>.md.

        Args:
            pdf_path: Upload key ("uploads/report.pdf") or bare name ("report.pdf")
            has_summary: Whether the caller's catalog showed a summary

        Raises:
            NotFoundError: The PDF is already gone; caller should refresh, not retry
            StoreError: The PDF delete itself failed
            InvalidFilenameError: pdf_path resolves outside the local storage root
        """
        pdf_key = pdf_path if pdf_path.startswith(settings.uploads_prefix) else keys.upload_key(pdf_path)
        result = DeletionResult(pdf_key=pdf_key)

        if not self.store.exists(pdf_key):
            logger.warning("Attempted to delete missing PDF", extra={"key": pdf_key})
            raise NotFoundError("This file no longer exists", operation="delete", key=pdf_key)

        self.store.delete(pdf_key)
        logger.info("Deleted PDF", extra={"key": pdf_key, "has_summary": has_summary})

        if has_summary:
            result.summary_key = keys.summary_key_for_upload(pdf_key)
            try:
                self.store.delete(result.summary_key)
                result.summary_deleted = True
            except NotFoundError:
                result.summary_deleted = True
                logger.info("Summary already gone", extra={"key": result.summary_key})
            except SummaryDeskError as e:
                result.summary_error = str(e)
                logger.error("Failed to delete summary, PDF delete stands",
                             extra={"key": result.summary_key, "error": str(e)})

        if self.verify:
            self._verify(result)
        return result

    def _verify(self, result: DeletionResult) -> None:
        """Re-check existence. Anything still present is reported, not raised."""
        targets = [result.pdf_key]
        if result.summary_deleted:
            targets.append(result.summary_key)
        for key in targets:
            try:
                still_there = self.store.exists(key)
            except StoreError as e:
                logger.warning("Could not verify deletion", extra={"key": key, "error": str(e)})
                result.anomalies.append(f"could not verify deletion of {key}")
                continue
            if still_there:
                logger.warning("Object still exists after delete", extra={"key": key})
                result.anomalies.append(f"{key} still exists after delete")
