# summary_desk/client.py
"""Async HTTP client for the Summary Desk API.

Used by the CLI. HTTP failures are mapped back onto the application's error
types so the summary coordinator can treat a failed catalog poll the same way
whether it runs in-process or over HTTP.
"""
from pathlib import Path
from typing import Optional

import httpx

from summary_desk.exceptions import (
    ConfigurationError,
    ConflictError,
    GenerationInProgress,
    InvalidFilenameError,
    NotFoundError,
    StoreError,
    SummaryDeskError,
    TransientStoreError,
    TriggerRejected,
)
from summary_desk.models import Document, UploadUrlResponse
from summary_desk.services.catalog import Catalog, SortField, SortOrder, SummaryFilter
from summary_desk.services.uploads import PDF_CONTENT_TYPE, UploadTicket
from summary_desk.utils.logging import logger

# Sent on catalog reads so no proxy hands back a stale listing
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _raise_for_status(response: httpx.Response, operation: str, key: Optional[str] = None) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    message = body.get("error") or body.get("detail") or f"{operation} failed ({response.status_code})"
    key = body.get("key") or key
    status = response.status_code

    if status == 404:
        raise NotFoundError(message, operation=operation, key=key)
    if status == 409 and operation == "generate_summary":
        raise GenerationInProgress(message, operation=operation, key=key)
    if status == 409:
        raise ConflictError(message, operation=operation, key=key)
    if status == 400:
        raise InvalidFilenameError(message, operation=operation, key=key)
    if status == 502 and operation == "generate_summary":
        raise TriggerRejected(message, operation=operation, key=key, status_code=status)
    if status in (502, 503, 504):
        raise TransientStoreError(message, operation=operation, key=key)
    if status >= 500 and body.get("action") == "contact_support":
        raise ConfigurationError(message, operation=operation, key=key)
    if status >= 500:
        raise StoreError(message, operation=operation, key=key)
    raise SummaryDeskError(message, operation=operation, key=key)


class SummaryDeskClient:
    def __init__(self, base_url: str, token: Optional[str] = None, *, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)
        # Signed URLs point at the blob store, not at the API
        self._uploads = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "SummaryDeskClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._uploads.aclose()

    async def _request(self, method: str, url: str, operation: str, key: Optional[str] = None, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransientStoreError(f"API unreachable: {e}", operation=operation, key=key) from e
        _raise_for_status(response, operation, key)
        return response

    async def list_documents(self, summary_filter: SummaryFilter = SummaryFilter.ALL,
                             sort: SortField = SortField.UPLOADED_AT,
                             order: SortOrder = SortOrder.DESC) -> Catalog:
        response = await self._request(
            "GET", "/api/documents", "list_documents",
            params={"filter": summary_filter.value, "sort": sort.value, "order": order.value},
            headers=NO_CACHE_HEADERS,
        )
        documents = [Document.model_validate(item) for item in response.json().get("documents", [])]
        return Catalog(documents=tuple(documents))

    async def load_catalog(self) -> Catalog:
        """Unfiltered catalog; the coordinator's catalog source."""
        return await self.list_documents()

    async def get_summary(self, name: str) -> str:
        response = await self._request("GET", f"/api/summaries/{name}", "get_summary", key=name)
        return response.json()["content"]

    async def request_upload_url(self, filename: str) -> UploadTicket:
        response = await self._request("POST", "/api/upload-url", "upload_url", key=filename,
                                       json={"filename": filename})
        body = UploadUrlResponse.model_validate(response.json())
        return UploadTicket(upload_url=body.upload_url, key=body.key)

    async def upload_pdf(self, path: Path) -> str:
        """Request a signed URL and PUT the file's bytes to it. Returns the storage key."""
        path = Path(path)
        ticket = await self.request_upload_url(path.name)
        try:
            response = await self._uploads.put(
                ticket.upload_url,
                content=path.read_bytes(),
                headers={"Content-Type": PDF_CONTENT_TYPE},
            )
        except httpx.TransportError as e:
            raise TransientStoreError(f"Upload failed: {e}", operation="upload", key=ticket.key) from e
        if not response.is_success:
            raise StoreError(f"Upload failed ({response.status_code})", operation="upload", key=ticket.key)
        logger.info("Uploaded PDF", extra={"key": ticket.key})
        return ticket.key

    async def delete_document(self, document: Document) -> dict:
        response = await self._request(
            "POST", "/api/delete", "delete", key=document.storage_key,
            json={"pdfPath": document.storage_key, "hasSummary": document.has_summary},
        )
        return response.json()

    async def start_summary(self, name: str) -> dict:
        """Ask the server to generate and poll inside this user's session."""
        response = await self._request("POST", f"/api/documents/{name}/summary", "generate_summary", key=name)
        return response.json()

    async def summary_status(self, name: str) -> dict:
        response = await self._request("GET", f"/api/documents/{name}/summary/status", "summary_status", key=name)
        return response.json()

    async def start_session(self) -> dict:
        response = await self._request("POST", "/api/session", "start_session")
        return response.json()

    async def end_session(self) -> dict:
        response = await self._request("DELETE", "/api/session", "end_session")
        return response.json()
