# backend/summary_desk/api/documents.py
"""Document catalog, upload, summary fetch and delete endpoints."""
from fastapi import APIRouter, Depends, Query, Response

from summary_desk.api.dependencies import get_session, get_store
from summary_desk.auth import get_current_user_id
from summary_desk.core.storage.blob_store import BlobStore
from summary_desk.models import (
    DeleteRequest,
    DeleteResponse,
    DocumentsResponse,
    SummaryResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from summary_desk.services import keys
from summary_desk.services.catalog import SortField, SortOrder, SummaryFilter, apply_view
from summary_desk.services.deletion import DeletionCoordinator
from summary_desk.services.sessions import UserSession
from summary_desk.services.uploads import UploadService
from summary_desk.utils.logging import logger

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/api/documents", response_model=DocumentsResponse)
def list_documents(
    response: Response,
    session: UserSession = Depends(get_session),
    summary_filter: SummaryFilter = Query(SummaryFilter.ALL, alias="filter"),
    sort: SortField = Query(SortField.UPLOADED_AT),
    order: SortOrder = Query(SortOrder.DESC),
):
    """Current catalog of uploaded PDFs with a fresh has_summary flag and download URL each.

    Listing failures return an error, never an empty list.
    """
    catalog = session.build_catalog()
    for header, value in NO_CACHE_HEADERS.items():
        response.headers[header] = value
    return DocumentsResponse(documents=apply_view(catalog.documents, summary_filter, sort, order))


@router.get("/api/summaries/{name}", response_model=SummaryResponse)
def get_summary(name: str, response: Response, store: BlobStore = Depends(get_store),
                user_id: str = Depends(get_current_user_id)):
    """Markdown summary for a document. name may be given with or without ".pdf"."""
    key = keys.summary_key(name)
    content = store.get_bytes(key).decode("utf-8", errors="replace")
    response.headers["Cache-Control"] = NO_CACHE_HEADERS["Cache-Control"]
    return SummaryResponse(content=content)


@router.post("/api/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(
    body: UploadUrlRequest,
    store: BlobStore = Depends(get_store),
    session: UserSession = Depends(get_session),
):
    """Signed PUT URL for uploads/<filename>. 409 if that file already exists."""
    ticket = await UploadService(store, session.tasks).request_upload_url(body.filename)
    return UploadUrlResponse(upload_url=ticket.upload_url, key=ticket.key)


@router.post("/api/delete", response_model=DeleteResponse)
def delete_document(
    body: DeleteRequest,
    store: BlobStore = Depends(get_store),
    session: UserSession = Depends(get_session),
):
    """Delete a PDF and, if it has one, its summary. 404 if the PDF is already gone."""
    result = DeletionCoordinator(store).delete_document(body.pdf_path, body.has_summary)
    logger.info("Document deleted", extra={
        "user_id": session.user_id,
        "key": result.pdf_key,
        "summary_deleted": result.summary_deleted,
        "anomalies": result.anomalies,
    })
    anomalies = list(result.anomalies)
    if result.summary_error:
        anomalies.append(f"summary not deleted: {result.summary_error}")
    return DeleteResponse(success=True, summary_deleted=result.summary_deleted, anomalies=anomalies)
