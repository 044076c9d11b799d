import json
import time
import uuid
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, Optional
from core.config import settings
from core.logger import get_logger
from services.slide_schema import Deck
from services.theme_manager import ThemeManager

logger = get_logger("session_service")

def format_event(event_type: str, data: Dict[str, Any]) -> str:
    """Render one Server-Sent Event"""
    return f"event: {event_type}\ndata: {json.dumps(data)}\n\n"

class SessionService:
    """In-memory presentation state per user session.

    Every generation request takes a new sequence number; a finished
    request only replaces the session's deck if no newer request was
    started in the meantime. Sessions idle longer than ``ttl`` seconds are
    dropped, and the least recently used ones go first once
    ``max_sessions`` is reached.
    """

    def __init__(self, ttl: Optional[float] = None, max_sessions: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.session_lock = Lock()
        self.ttl = settings.session_ttl if ttl is None else ttl
        self.max_sessions = settings.max_sessions if max_sessions is None else max_sessions
        self.clock = clock

    def create_session(self) -> str:
        session_id = str(uuid.uuid4())
        with self.session_lock:
            self._ensure(session_id)
        logger.info(f"Created session {session_id}")
        return session_id

    def _ensure(self, session_id: str) -> Dict[str, Any]:
        self._cleanup_expired()
        session = self.sessions.get(session_id)
        if session is None:
            self._make_room()
            session = {
                "created_at": datetime.now().isoformat(),
                "last_active": self.clock(),
                "sequence": 0,
                "deck": None,
                "theme": None,
            }
            self.sessions[session_id] = session
        session["last_active"] = self.clock()
        return session

    def _lookup(self, session_id: str) -> Optional[Dict[str, Any]]:
        self._cleanup_expired()
        session = self.sessions.get(session_id)
        if session is not None:
            session["last_active"] = self.clock()
        return session

    def _cleanup_expired(self):
        """Drop sessions idle for longer than the TTL; caller holds the lock"""
        if self.ttl <= 0:
            return
        cutoff = self.clock() - self.ttl
        expired = [sid for sid, info in self.sessions.items() if info["last_active"] < cutoff]
        for sid in expired:
            del self.sessions[sid]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")

    def _make_room(self):
        """Evict least recently used sessions until one more fits"""
        while self.max_sessions > 0 and len(self.sessions) >= self.max_sessions:
            oldest = min(self.sessions, key=lambda sid: self.sessions[sid]["last_active"])
            del self.sessions[oldest]
            logger.info(f"Evicted session {oldest} (limit {self.max_sessions})")

    def begin_request(self, session_id: str) -> int:
        """Start a generation request; any earlier request becomes stale"""
        with self.session_lock:
            session = self._ensure(session_id)
            session["sequence"] += 1
            sequence = session["sequence"]
        logger.info(f"Session {session_id}: request #{sequence} started")
        return sequence

    def is_current(self, session_id: str, sequence: int) -> bool:
        with self.session_lock:
            session = self.sessions.get(session_id)
            return session is not None and session["sequence"] == sequence

    def publish(self, session_id: str, sequence: int, deck: Deck) -> bool:
        """Store the deck if the request is still the latest one"""
        with self.session_lock:
            session = self._lookup(session_id)
            if session is None or session["sequence"] != sequence:
                latest = session["sequence"] if session else None
                logger.info(f"Session {session_id}: dropping stale result #{sequence} (latest #{latest})")
                return False
            session["deck"] = deck
            session["theme"] = deck.theme
        return True

    def has_session(self, session_id: str) -> bool:
        with self.session_lock:
            return self._lookup(session_id) is not None

    def get_deck(self, session_id: str) -> Optional[Deck]:
        with self.session_lock:
            session = self._lookup(session_id)
            return session["deck"] if session else None

    def set_theme(self, session_id: str, theme: str) -> Optional[Deck]:
        """Re-theme the session's current deck, if it has one"""
        theme_id = ThemeManager.normalize_theme(theme)
        with self.session_lock:
            session = self._lookup(session_id)
            if session is None:
                return None
            session["theme"] = theme_id
            if session["deck"] is not None:
                session["deck"] = session["deck"].model_copy(update={"theme": theme_id})
            return session["deck"]

    def get_theme(self, session_id: str) -> Optional[str]:
        with self.session_lock:
            session = self._lookup(session_id)
            return session["theme"] if session else None

    def end_session(self, session_id: str):
        with self.session_lock:
            if self.sessions.pop(session_id, None) is not None:
                logger.info(f"Ended session {session_id}")

    def session_count(self) -> int:
        with self.session_lock:
            return len(self.sessions)

# Global instance
session_service = SessionService()
