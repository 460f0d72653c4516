"""In-memory registry of live onboarding sessions"""

import logging
import time
from typing import Callable, Dict, Optional

from onboarding_gateway.config import settings
from onboarding_gateway.domain.exceptions import SessionNotFoundError
from onboarding_gateway.domain.models import EntryFlow
from onboarding_gateway.domain.pipeline import WizardSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Holds wizard sessions by id for the lifetime of the process.

    Drafts are never persisted; restarting the service discards them.
    A session untouched for longer than the idle timeout is abandoned and
    dropped, along with its draft and cached attachment encodings. A
    session that is submitting is never expired.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, WizardSession] = {}
        self._touched: Dict[str, float] = {}

    def create(self, entry_flow: EntryFlow) -> WizardSession:
        self.expire_idle()
        session = WizardSession(entry_flow)
        self._sessions[session.session_id] = session
        self._touched[session.session_id] = self._clock()
        logger.info(
            "Onboarding session started",
            extra={"session_id": session.session_id, "entry_flow": entry_flow.value},
        )
        return session

    def get(self, session_id: str) -> WizardSession:
        """
        Raises:
            SessionNotFoundError: If no live session has this id
        """
        self.expire_idle()
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Onboarding session {session_id} not found") from None
        self._touched[session_id] = self._clock()
        return session

    def discard(self, session_id: str) -> None:
        session = self.get(session_id)
        session.abandon()
        self._drop(session_id)

    def expire_idle(self) -> int:
        """Drop sessions idle past the timeout; returns how many were dropped"""
        if self.ttl_seconds <= 0:
            return 0
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            session_id
            for session_id, touched in self._touched.items()
            if touched < cutoff and not self._sessions[session_id].submission_in_flight
        ]
        for session_id in expired:
            self._sessions[session_id].abandon()
            self._drop(session_id)
            logger.info("Onboarding session expired", extra={"session_id": session_id})
        return len(expired)

    def _drop(self, session_id: str) -> None:
        del self._sessions[session_id]
        del self._touched[session_id]

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry()
