# backend/summary_desk/auth.py
"""Clerk authentication dependencies"""
from fastapi import HTTPException, Request
from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
import httpx

from summary_desk.config import settings
from summary_desk.utils.logging import logger


_clerk = None


def get_clerk() -> Clerk:
    """Clerk client, created on first authenticated request."""
    global _clerk
    if _clerk is None:
        _clerk = Clerk(bearer_auth=settings.clerk_secret_key)
    return _clerk


def get_current_user_id(request: Request) -> str:
    """
    Extract and verify Clerk session token from request.
    Returns the Clerk user ID.
    """
    if settings.auth_disabled:
        return settings.dev_user_id

    auth_header = request.headers.get("authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        logger.warning("[Auth] Missing or invalid authorization header")
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    try:
        # Convert FastAPI request to httpx request for Clerk SDK
        httpx_request = httpx.Request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers)
        )

        # Empty options accepts session tokens by default (not OAuth tokens)
        request_state = get_clerk().authenticate_request(
            httpx_request,
            AuthenticateRequestOptions()
        )

        if not request_state.is_signed_in:
            logger.warning("[Auth] User is not signed in")
            raise HTTPException(status_code=401, detail="Not signed in")

        # The user ID is in the 'sub' field of the JWT payload
        user_id = request_state.payload.get('sub') if request_state.payload else None

        if not user_id:
            logger.warning("[Auth] Could not extract user_id from token payload")
            raise HTTPException(status_code=401, detail="Could not extract user_id from token")
        return user_id

    except HTTPException:
        raise
    except Exception as e:
        logger.warning(f"[Auth] Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail=f"Invalid session token: {str(e)}")
