# backend/summary_desk/api/session.py
"""Session start (after sign-in) and logout."""
from fastapi import APIRouter, Depends

from summary_desk.api.dependencies import get_session, get_sessions
from summary_desk.auth import get_current_user_id
from summary_desk.models import SessionResponse
from summary_desk.services.sessions import SessionRegistry, UserSession

router = APIRouter()


@router.post("/api/session", response_model=SessionResponse)
async def start_session(session: UserSession = Depends(get_session)):
    """Called by the web client after sign-in. Wakes the summarizer once per session."""
    await session.ensure_spin_up()
    return SessionResponse(
        user_id=session.user_id,
        spin_up_triggered=session.spin_up_triggered,
        in_progress=sorted(session.in_progress),
    )


@router.delete("/api/session")
async def end_session(
    user_id: str = Depends(get_current_user_id),
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Logout: cancel this user's polling and background tasks and forget session state."""
    ended = await sessions.end(user_id)
    return {"success": True, "ended": ended}
