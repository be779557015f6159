# legaldocs/session.py
"""
Per-principal session state.

A SessionContext is created the first time an authenticated principal calls
the API. It is dropped at sign-out or by the registry limits
(SESSION_IDLE_TTL, MAX_SESSIONS). Orchestrators receive it explicitly.
"""
import contextlib
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from legaldocs.chat import CHANNELS, Transcript
from legaldocs.config import settings
from legaldocs.errors import Busy, NotAuthenticated, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    user_id: Optional[str]
    # cached list of the principal's documents; None means "refetch"
    documents: Optional[List] = None
    # gate for the compare chat, set by a successful comparison
    documents_processed: bool = False
    uploading: bool = False
    comparing: bool = False
    transcripts: Dict[str, Transcript] = field(default_factory=dict)

    def require_user(self, message: str = "User must be logged in") -> str:
        if not self.user_id:
            raise NotAuthenticated(message)
        return self.user_id

    def invalidate_documents(self) -> None:
        self.documents = None

    def transcript(self, channel: str) -> Transcript:
        if channel not in CHANNELS:
            raise ValidationFailed(f"Unknown chat channel: {channel}")
        if channel not in self.transcripts:
            self.transcripts[channel] = Transcript(channel=channel)
        return self.transcripts[channel]

    @contextlib.contextmanager
    def in_flight(self, flag: str, message: str):
        """Set a boolean flag for the duration of an operation; refuse to re-enter."""
        if getattr(self, flag):
            raise Busy(message)
        setattr(self, flag, True)
        try:
            yield
        finally:
            setattr(self, flag, False)


class SessionRegistry:
    """
    Sessions keyed by token subject, least recently used first.
    Entries idle longer than idle_ttl seconds are dropped on the next lookup,
    and the oldest entries go once there are more than max_sessions.
    """

    def __init__(self, idle_ttl: Optional[float] = None, max_sessions: Optional[int] = None, clock=time.monotonic):
        self.idle_ttl = idle_ttl
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: "OrderedDict[str, SessionContext]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}

    def _drop(self, user_id: str, reason: str) -> None:
        self._sessions.pop(user_id, None)
        self._last_seen.pop(user_id, None)
        logger.debug("Session %s for %s", reason, user_id)

    def _evict(self, now: float) -> None:
        if self.idle_ttl is not None:
            while self._sessions:
                oldest = next(iter(self._sessions))
                if now - self._last_seen[oldest] <= self.idle_ttl:
                    break
                self._drop(oldest, "expired")
        if self.max_sessions is not None:
            while len(self._sessions) > self.max_sessions:
                self._drop(next(iter(self._sessions)), "evicted")

    def get(self, user_id: str) -> SessionContext:
        now = self._clock()
        self._evict(now)
        ctx = self._sessions.get(user_id)
        if ctx is None:
            ctx = SessionContext(user_id=user_id)
            self._sessions[user_id] = ctx
            logger.debug("Session started for %s", user_id)
        else:
            self._sessions.move_to_end(user_id)
        self._last_seen[user_id] = now
        self._evict(now)
        return ctx

    def end(self, user_id: str) -> bool:
        ended = user_id in self._sessions
        if ended:
            self._drop(user_id, "ended")
        return ended

    def clear(self) -> None:
        self._sessions.clear()
        self._last_seen.clear()

    def __contains__(self, user_id):
        return user_id in self._sessions

    def __len__(self):
        return len(self._sessions)


sessions = SessionRegistry(idle_ttl=settings.session_idle_ttl, max_sessions=settings.max_sessions)
