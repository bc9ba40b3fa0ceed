# summary_desk/exceptions.py

"""Shared exceptions for the application.

Every error carries the operation and the key (or document name) involved so
callers can decide whether to retry, refresh, or give up.
"""
from typing import Optional

ACTIONS = ("retry", "refresh", "fix_input", "wait", "contact_support")


class SummaryDeskError(Exception):
    """Base class for application errors."""

    # What the caller should do next; one of ACTIONS
    action = "retry"

    def __init__(self, message: str, *, operation: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.key = key

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "operation": self.operation,
            "key": self.key,
            "action": self.action,
        }


class StoreError(SummaryDeskError):
    """Blob store call failed."""
    pass


class TransientStoreError(StoreError):
    """Network or timeout failure talking to the blob store. Safe to retry idempotent calls."""
    pass


class NotFoundError(SummaryDeskError):
    """Referenced object is absent from the blob store."""
    action = "refresh"


class ConflictError(SummaryDeskError):
    """Upload target already exists."""
    action = "refresh"


class InvalidFilenameError(SummaryDeskError):
    """Filename cannot be used as an upload key."""
    action = "fix_input"


class TriggerRejected(SummaryDeskError):
    """Summarization webhook returned non-2xx, failed at the network level, or reported an existing summary."""

    def __init__(self, message: str, *, operation: Optional[str] = "trigger_summary", key: Optional[str] = None,
                 status_code: Optional[int] = None, already_exists: bool = False):
        super().__init__(message, operation=operation, key=key)
        self.status_code = status_code
        self.already_exists = already_exists
        if already_exists:
            self.action = "refresh"


class PollTimeout(SummaryDeskError):
    """Summary generation exceeded its polling budget. The job may still finish later."""
    action = "refresh"


class GenerationInProgress(SummaryDeskError):
    """A summary generation for this document is already running."""
    action = "wait"


class ConfigurationError(SummaryDeskError):
    """Required endpoint or credentials are missing. Not retried."""
    action = "contact_support"
