"""
Session Management

In-memory TTL session store for chat conversations.

Each session carries its own expiry deadline, checked lazily on access and
pushed forward by `touch`/`upsert`. A daemon thread sweeps expired and stale
entries periodically so abandoned sessions do not accumulate.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from app_config import (
    SESSION_STALE_SECONDS,
    SESSION_SWEEP_INTERVAL_SECONDS,
    SESSION_TTL_SECONDS,
)
from chat_logger import get_logger
from models import ChatMessage, Product

logger = get_logger("shopping_assistant.session")


@dataclass
class Session:
    session_id: str
    history: List[ChatMessage] = field(default_factory=list)
    last_shown_products: List[Product] = field(default_factory=list)
    created_at: float = 0.0
    updated_at: float = 0.0
    expires_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "history": [m.to_dict() for m in self.history],
            "lastShownProducts": [p.to_dict() for p in self.last_shown_products],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "expiresAt": self.expires_at,
        }


class SessionStore:
    """Thread-safe session map with per-entry deadlines and a periodic sweep."""

    def __init__(
        self,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        stale_seconds: float = SESSION_STALE_SECONDS,
        sweep_interval: float = SESSION_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.stale_seconds = stale_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweep_thread: Optional[threading.Thread] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _expired(self, session: Session, now: float) -> bool:
        return now >= session.expires_at or now - session.updated_at > self.stale_seconds

    # ─── Access ───

    def get(self, session_id: str) -> Optional[Session]:
        """Return the live session, or None if unknown or expired."""
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._expired(session, now):
                del self._sessions[session_id]
                return None
            return session

    def create(self) -> Session:
        now = self._clock()
        session = Session(
            session_id=uuid.uuid4().hex,
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl_seconds,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Session created | id={session.session_id}")
        return session

    def upsert(
        self,
        session_id: str,
        history: List[ChatMessage],
        last_shown_products: Optional[List[Product]] = None,
    ) -> Session:
        """Store the turn's result under session_id; last writer wins."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(session_id=session_id, created_at=now)
                self._sessions[session_id] = session
            session.history = list(history)
            if last_shown_products is not None:
                session.last_shown_products = list(last_shown_products)
            session.updated_at = now
            session.expires_at = now + self.ttl_seconds
            return session

    def touch(self, session_id: str) -> bool:
        """Push the inactivity deadline forward. False if the session is gone."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or self._expired(session, now):
                self._sessions.pop(session_id, None)
                return False
            session.updated_at = now
            session.expires_at = now + self.ttl_seconds
            return True

    # ─── Sweeping ───

    def sweep(self) -> int:
        """Drop expired and stale sessions. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            dead = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
            for sid in dead:
                del self._sessions[sid]
        if dead:
            logger.info(f"Session sweep | removed={len(dead)}")
        return len(dead)

    def start_sweeper(self):
        """Start the daemon thread that sweeps every `sweep_interval` seconds."""
        if self._sweep_thread and self._sweep_thread.is_alive():
            return
        self._stop.clear()

        def _sweep_loop():
            while not self._stop.wait(self.sweep_interval):
                try:
                    self.sweep()
                except Exception:
                    logger.exception("Session sweep failed")

        self._sweep_thread = threading.Thread(
            target=_sweep_loop, name="session-sweeper", daemon=True
        )
        self._sweep_thread.start()
        logger.info(f"Session sweeper started | interval={self.sweep_interval}s")

    def stop_sweeper(self):
        self._stop.set()
        if self._sweep_thread:
            self._sweep_thread.join(timeout=1.0)
            self._sweep_thread = None
