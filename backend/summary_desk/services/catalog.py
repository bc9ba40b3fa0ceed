# summary_desk/services/catalog.py
"""Document catalog: joins uploaded PDFs with existing summaries.

The catalog is a point-in-time snapshot. It is rebuilt from two prefix
listings on every read and replaced wholesale, never patched.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from summary_desk.core.storage.blob_store import BlobStore
from summary_desk.config import settings
from summary_desk.models import Document
from summary_desk.services import keys
from summary_desk.utils.logging import logger


class SummaryFilter(str, Enum):
    ALL = "all"
    WITH_SUMMARY = "withSummary"
    WITHOUT_SUMMARY = "withoutSummary"


class SortField(str, Enum):
    NAME = "name"
    UPLOADED_AT = "date"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Catalog:
    documents: Tuple[Document, ...] = ()
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def find(self, name: str) -> Optional[Document]:
        for doc in self.documents:
            if doc.name == name:
                return doc
        return None

    def names(self) -> List[str]:
        return [doc.name for doc in self.documents]

    def __len__(self) -> int:
        return len(self.documents)


class CatalogBuilder:
    """Builds a Catalog from the blob store. Read-only."""

    def __init__(self, store: BlobStore, read_url_ttl: Optional[int] = None):
        self.store = store
        self.read_url_ttl = read_url_ttl or settings.presign_expiry_seconds

    def build(self) -> Catalog:
        """List uploads and summaries and join them by base name.

        Listing failures propagate (StoreError / TransientStoreError); an empty
        catalog always means an empty bucket.
        """
        uploads = self.store.list_objects(settings.uploads_prefix)
        summaries = self.store.list_objects(settings.summaries_prefix)

        summary_names = set()
        for obj in summaries:
            base = keys.summary_key_base_name(obj.key)
            if base:
                summary_names.add(base)

        documents = []
        for obj in uploads:
            if not keys.is_pdf_key(obj.key):
                continue
            name = keys.document_name(obj.key)
            if not name:
                continue
            documents.append(Document(
                name=name,
                storage_key=obj.key,
                uploaded_at=obj.last_modified,
                has_summary=keys.summary_base_name(name) in summary_names,
                download_url=self.store.signed_read_url(obj.key, self.read_url_ttl),
            ))

        logger.info("Built document catalog", extra={
            "documents": len(documents),
            "summaries": len(summary_names),
        })
        return Catalog(documents=tuple(documents))


# ---------- Pure view helpers ----------

def filter_documents(documents: Iterable[Document], summary_filter: SummaryFilter = SummaryFilter.ALL) -> List[Document]:
    if summary_filter == SummaryFilter.WITH_SUMMARY:
        return [doc for doc in documents if doc.has_summary]
    if summary_filter == SummaryFilter.WITHOUT_SUMMARY:
        return [doc for doc in documents if not doc.has_summary]
    return list(documents)


def sort_documents(documents: Iterable[Document], sort_field: SortField = SortField.UPLOADED_AT,
                   order: SortOrder = SortOrder.DESC) -> List[Document]:
    """Stable, deterministic sort. Equal timestamps fall back to name."""
    if sort_field == SortField.NAME:
        key = lambda doc: doc.name
    else:
        key = lambda doc: (doc.uploaded_at, doc.name)
    return sorted(documents, key=key, reverse=(order == SortOrder.DESC))


def apply_view(documents: Iterable[Document], summary_filter: SummaryFilter = SummaryFilter.ALL,
               sort_field: SortField = SortField.UPLOADED_AT, order: SortOrder = SortOrder.DESC) -> List[Document]:
    return sort_documents(filter_documents(documents, summary_filter), sort_field, order)
