# summary_desk/services/keys.py
"""Canonical mapping between upload keys, document names and summary keys.

Every place that joins PDFs to summaries goes through these functions:
strip the uploads prefix once, strip a trailing ".pdf", and compare against summary
keys stripped of the summaries prefix and a trailing ".md".
"""
from typing import Optional

from summary_desk.config import settings

PDF_SUFFIX = ".pdf"
SUMMARY_SUFFIX = ".md"


def _strip_prefix(value: str, prefix: str) -> str:
    return value[len(prefix):] if value.startswith(prefix) else value


def _strip_suffix(value: str, suffix: str) -> str:
    return value[:-len(suffix)] if value.endswith(suffix) else value


def upload_key(name: str) -> str:
    """uploads/<name>"""
    return f"{settings.uploads_prefix}{name}"


def document_name(key: str) -> Optional[str]:
    """Filename for an upload key, or None when nothing is left after the prefix."""
    name = _strip_prefix(key, settings.uploads_prefix)
    return name or None


def summary_base_name(name: str) -> str:
    """Base name used for the summary join: the document name without ".pdf"."""
    return _strip_suffix(name, PDF_SUFFIX)


def summary_key(name: str) -> str:
    """summaries/<name without .pdf>.md for a document name (never a full upload key)."""
    return f"{settings.summaries_prefix}{summary_base_name(name)}{SUMMARY_SUFFIX}"


def summary_key_for_upload(key: str) -> str:
    """Summary key for a full upload key; the uploads prefix is stripped exactly once."""
    return summary_key(_strip_prefix(key, settings.uploads_prefix))


def summary_key_base_name(key: str) -> Optional[str]:
    """Inverse of summary_key for a listed summary object, or None for non-summary keys."""
    if not key.endswith(SUMMARY_SUFFIX):
        return None
    base = _strip_suffix(_strip_prefix(key, settings.summaries_prefix), SUMMARY_SUFFIX)
    return base or None


def is_pdf_key(key: str) -> bool:
    return key.endswith(PDF_SUFFIX)
