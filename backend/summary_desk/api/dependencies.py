# summary_desk/api/dependencies.py
from fastapi import Depends, Request

from summary_desk.auth import get_current_user_id
from summary_desk.core.storage.blob_store import BlobStore, get_blob_store
from summary_desk.services.sessions import SessionRegistry, UserSession


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_session(
    user_id: str = Depends(get_current_user_id),
    sessions: SessionRegistry = Depends(get_sessions),
) -> UserSession:
    return sessions.get(user_id)


def get_store() -> BlobStore:
    return get_blob_store()
