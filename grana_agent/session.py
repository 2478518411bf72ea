from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from .history import ConversationHistory

logger = logging.getLogger(__name__)


@dataclass
class AgentSession:
    """Per-user conversation state owned by the caller and passed into each turn."""

    user_id: str
    history: ConversationHistory = field(default_factory=ConversationHistory)

    def clear(self) -> None:
        self.history.clear()
        logger.info("session_cleared user=%s", self.user_id)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, AgentSession] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> AgentSession:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = AgentSession(user_id=user_id)
                self._sessions[user_id] = session
            return session

    def drop(self, user_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.clear()
        return True
