"""
Session Store - process-wide registry of collaborative sessions.

Sessions are created lazily on first join and live in memory only;
everything is lost when the process stops.
"""

import logging
import threading
from typing import Dict, Any, Optional, List

from .models import Session

logger = logging.getLogger(__name__)

DEFAULT_WELCOME_CONTENT = "# Welcome to Collaborative Markdown Editor\n\nStart editing..."


class SessionStore:
    """
    Owns every Session object.

    The session table itself is guarded by a plain lock so lookups stay safe
    from worker threads; per-session mutation is serialized by each
    Session's own asyncio lock (see CollaborationManager).
    """

    def __init__(self, welcome_content: str = DEFAULT_WELCOME_CONTENT):
        self.welcome_content = welcome_content
        # session_id -> Session
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str) -> Session:
        """Return the session, creating it with the welcome content if unseen."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(id=session_id, content=self.welcome_content)
                self._sessions[session_id] = session
                logger.info(f"Session {session_id} created")
            return session

    def get(self, session_id: str) -> Optional[Session]:
        """Lookup without creating."""
        with self._lock:
            return self._sessions.get(session_id)

    def sessions_for(self, connection_id: str) -> List[Session]:
        """All sessions that list this connection as a participant."""
        with self._lock:
            sessions = list(self._sessions.values())
        return [s for s in sessions if s.has_participant(connection_id)]

    def discard_if_empty(self, session: Session) -> bool:
        """
        Evict a session that has no participants left.

        Must be called while holding session.lock. The evicted session is
        marked closed so a join that fetched it earlier retries on a fresh one.
        """
        if not session.is_empty:
            return False
        with self._lock:
            if self._sessions.get(session.id) is session:
                del self._sessions[session.id]
        session.closed = True
        logger.info(f"Session {session.id} evicted (no participants left)")
        return True

    def list_sessions(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def stats(self) -> Dict[str, Any]:
        """
        Session and participant counts.

        Reads without taking session locks: it runs synchronously on the event
        loop, and handlers never await between mutating a participant table
        and finishing that mutation, so the counts cannot be torn.
        """
        sessions = self.list_sessions()
        return {
            "sessions": len(sessions),
            "participants": sum(len(s.participants) for s in sessions),
        }

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
