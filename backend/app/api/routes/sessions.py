"""
Anonymous Session API Routes
"""

from fastapi import APIRouter, status

from app.api.dependencies import CurrentUserId, SessionServiceDep
from app.api.responses import success_response
from app.domain.sessions import ClaimSessionResponse, SessionResponse


router = APIRouter(prefix="/sessions")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(sessions: SessionServiceDep):
    session = await sessions.create_session()
    return success_response(SessionResponse.from_session(session))


@router.get("/{session_id}")
async def get_session(session_id: str, sessions: SessionServiceDep):
    session = await sessions.get_session(session_id)
    return success_response(SessionResponse.from_session(session))


@router.post("/{session_id}/claim")
async def claim_session(session_id: str, user_id: CurrentUserId, sessions: SessionServiceDep):
    """Move the session's conversations to the authenticated user."""
    transferred = await sessions.claim_session(session_id, user_id)
    return success_response(
        ClaimSessionResponse(
            conversations_transferred=transferred,
            message=f"Transferred {transferred} conversation(s) to your account",
        )
    )
