"""
Session Service for EchoWrite

Anonymous trial sessions: creation, lookup, claiming by a registered user
and cleanup of expired rows.
"""

import logging
from datetime import datetime, timezone

from app.domain.interfaces import IAnonymousSessionRepository, IConversationRepository
from app.domain.sessions import AnonymousSession, is_session_expired, session_expiry
from app.infrastructure.exceptions import NotFoundError, QuotaExceededError


logger = logging.getLogger(__name__)


SESSION_EXPIRED_MESSAGE = "Session has expired. Please create a new session."


class SessionService:
    """
    Args:
        sessions: Anonymous session repository
        conversations: Conversation repository (used by claim)
        conversations_limit: Allowance given to each new session
        expiry_days: Session lifetime
    """

    def __init__(
        self,
        sessions: IAnonymousSessionRepository,
        conversations: IConversationRepository,
        conversations_limit: int = 3,
        expiry_days: int = 30,
    ):
        self._sessions = sessions
        self._conversations = conversations
        self._conversations_limit = conversations_limit
        self._expiry_days = expiry_days

    async def create_session(self) -> AnonymousSession:
        session = await self._sessions.create(
            conversations_limit=self._conversations_limit,
            expires_at=session_expiry(self._expiry_days),
        )
        logger.info(f"Created anonymous session {session.id}")
        return session

    async def get_session(self, session_id: str) -> AnonymousSession:
        """
        Raises:
            NotFoundError: unknown session id
            QuotaExceededError: the session is past its expiry
        """
        session = await self._sessions.get_by_id(session_id)
        if session is None:
            raise NotFoundError("Session")
        if is_session_expired(session):
            raise QuotaExceededError(SESSION_EXPIRED_MESSAGE, details={"session_id": session_id})
        return session

    async def claim_session(self, session_id: str, user_id: str) -> int:
        """
        Move every conversation and message of ``session_id`` to ``user_id``.

        Both tables change together or not at all. The session row itself
        is left to expire. Returns the conversations the session had used.
        """
        session = await self._sessions.get_by_id(session_id)
        if session is None:
            raise NotFoundError("Session")

        moved = await self._conversations.transfer_session_to_user(session_id, user_id)
        logger.info(
            f"User {user_id} claimed session {session_id} "
            f"({session.conversations_used} used, {moved} conversations moved)"
        )
        return session.conversations_used

    async def cleanup_expired_sessions(self) -> int:
        deleted = await self._sessions.delete_expired(datetime.now(timezone.utc))
        logger.info(f"Deleted {deleted} expired anonymous sessions")
        return deleted
