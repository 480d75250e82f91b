"""In-memory registry of search sessions, one orchestrator each."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .orchestrator import PollOrchestrator

SESSION_TTL_SECONDS = 30 * 60  # 30 minutes


@dataclass
class Session:
    id: str
    orchestrator: PollOrchestrator
    last_accessed: float = field(default_factory=time.time)


class SessionStore:
    def __init__(self, factory: Callable[[], PollOrchestrator], ttl_seconds: int = SESSION_TTL_SECONDS):
        self._factory = factory
        self._ttl = ttl_seconds
        self._sessions: Dict[str, Session] = {}

    def start(self, session_id: Optional[str] = None) -> Session:
        """A new search always gets a fresh orchestrator; the old one is cancelled."""
        self._cleanup_expired()

        new_id = session_id or str(uuid.uuid4())
        previous = self._sessions.get(new_id)
        if previous is not None:
            previous.orchestrator.cancel()

        session = Session(id=new_id, orchestrator=self._factory())
        self._sessions[new_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        self._cleanup_expired()
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_accessed = time.time()
        return session

    def clear(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.orchestrator.cancel()

    def clear_all(self) -> None:
        for session_id in list(self._sessions):
            self.clear(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def _cleanup_expired(self) -> None:
        now = time.time()
        expired = [
            sid for sid, s in self._sessions.items()
            if now - s.last_accessed > self._ttl
        ]
        for sid in expired:
            self.clear(sid)
