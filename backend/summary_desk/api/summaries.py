# backend/summary_desk/api/summaries.py
"""Summary generation endpoints.

POST starts generation in the caller's session; the browser then reads the
status endpoint. Polling of the blob store happens inside the session and stops
when the session ends.
"""
from fastapi import APIRouter, Depends

from summary_desk.api.dependencies import get_session
from summary_desk.exceptions import NotFoundError
from summary_desk.models import GenerationStatusResponse
from summary_desk.services.sessions import UserSession
from summary_desk.services.summary_coordinator import GenerationState

router = APIRouter()


def _status(session: UserSession, name: str) -> GenerationStatusResponse:
    result = session.generation_result(name)
    if result is None:
        doc = session.catalog.find(name) if session.catalog else None
        return GenerationStatusResponse(
            name=name,
            state=GenerationState.IDLE.value,
            has_summary=bool(doc and doc.has_summary),
        )
    return GenerationStatusResponse(
        name=name,
        state=result.state.value,
        has_summary=result.has_summary,
        message=result.message,
    )


@router.post("/api/documents/{name}/summary", response_model=GenerationStatusResponse, status_code=202)
async def start_summary(name: str, session: UserSession = Depends(get_session)):
    """
    Trigger summary generation for a document and start polling for it.

    Returns 202 immediately; 409 if generation is already running for this
    document, 404 if the document is not in the catalog.
    """
    catalog = await session.load_catalog()
    session.replace_catalog(catalog)
    document = catalog.find(name)
    if document is None:
        raise NotFoundError(f"Document not found: {name}", operation="generate_summary", key=name)

    session.coordinator.start(document)
    return _status(session, name)


@router.get("/api/documents/{name}/summary/status", response_model=GenerationStatusResponse)
def summary_status(name: str, session: UserSession = Depends(get_session)):
    """Latest generation state for a document in this session."""
    return _status(session, name)
