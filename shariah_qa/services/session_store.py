# =============================================================================
# Session Store — Bounded In-Memory Conversation History
# =============================================================================
#
# Holds one Session per conversation: a sliding window of the last
# `max_history` messages plus query counters. Nothing is persisted; a
# restart forgets every session.
#
# LIFETIME:
#   A session expires `timeout` after its last read or write. Expired
#   sessions are dropped lazily on access and eagerly by a sweep task that
#   runs every `sweep_interval` once start() has been called.
#
# CONCURRENCY:
#   All mutating methods are synchronous and never await, so on a single
#   event loop they are atomic. Whole-query serialisation per session is
#   provided by lock(session_id), which the orchestrator holds for the
#   duration of one query.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from shariah_qa.agents.errors import SessionNotFoundError
from shariah_qa.agents.types import (
    ComplianceStatus,
    ConversationMessage,
    Session,
)
from shariah_qa.config import settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    Args:
        max_history: Messages kept per session (oldest dropped first).
        timeout_seconds: Idle time after which a session expires.
        sweep_interval_seconds: Period of the background expiry sweep.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        max_history: int | None = None,
        timeout_seconds: float | None = None,
        sweep_interval_seconds: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.max_history = (
            settings.session_max_history if max_history is None else max_history
        )
        self.timeout = timedelta(
            seconds=settings.session_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )
        self.sweep_interval = (
            settings.session_sweep_interval_seconds
            if sweep_interval_seconds is None
            else sweep_interval_seconds
        )
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._sweep_task: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self) -> str:
        """Create an empty session and return its id."""
        session_id = uuid.uuid4().hex
        now = self._clock()
        self._sessions[session_id] = Session(
            id=session_id, created_at=now, last_accessed_at=now,
        )
        logger.info("Created session %s", session_id)
        return session_id

    def get(self, session_id: str) -> Session | None:
        """
        Return the live session, refreshing its last-access time.

        An expired session is removed and reported as absent.
        """
        session = self._sessions.get(session_id)
        if session is None:
            return None

        now = self._clock()
        if self._is_expired(session, now):
            self._remove(session_id)
            logger.info("Session %s expired and removed", session_id)
            return None

        session.last_accessed_at = now
        return session

    def get_or_create(self, session_id: str | None = None) -> Session:
        if session_id:
            existing = self.get(session_id)
            if existing is not None:
                return existing
        return self._sessions[self.create()]

    def update(self, session_id: str, message: ConversationMessage) -> None:
        """
        Append a message, trimming history to `max_history`.

        Raises:
            SessionNotFoundError: unknown or expired session.
        """
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        session.history.append(message)
        if len(session.history) > self.max_history:
            del session.history[: len(session.history) - self.max_history]

        if message.role == "user":
            session.total_queries += 1
        if (
            message.role == "assistant"
            and message.compliance_status == ComplianceStatus.FLAGGED
        ):
            session.flagged_queries += 1

        session.last_accessed_at = self._clock()

    def delete(self, session_id: str) -> bool:
        deleted = self._remove(session_id)
        if deleted:
            logger.info("Deleted session %s", session_id)
        return deleted

    def last_n(
        self, session_id: str, n: int, role: str | None = None,
    ) -> list[ConversationMessage]:
        """
        Most recent `n` messages, oldest first; [] for unknown sessions.

        With `role`, the window counts only messages of that role.
        """
        session = self.get(session_id)
        if session is None or n <= 0:
            return []
        messages = session.history
        if role is not None:
            messages = [m for m in messages if m.role == role]
        return list(messages[-n:])

    def active_count(self) -> int:
        return len(self._sessions)

    def lock(self, session_id: str) -> asyncio.Lock:
        """
        Per-session lock serialising queries of one conversation.

        Unknown ids get a fresh, unregistered lock.
        """
        if session_id not in self._sessions:
            return asyncio.Lock()
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    # -------------------------------------------------------------------------
    # Expiry
    # -------------------------------------------------------------------------

    def sweep_expired(self) -> int:
        """Remove every expired session. Returns how many were removed."""
        now = self._clock()
        expired = [
            sid for sid, session in self._sessions.items()
            if self._is_expired(session, now)
        ]
        for sid in expired:
            self._remove(sid)

        if expired:
            logger.info(
                "Swept %d expired sessions (active: %d)",
                len(expired), len(self._sessions),
            )
        return len(expired)

    def start(self) -> None:
        """Launch the periodic sweep on the running event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.info("Session sweep started (interval: %.0fs)", self.sweep_interval)

    async def destroy(self) -> None:
        """Stop the sweep and drop every session. Safe to call twice."""
        task, self._sweep_task = self._sweep_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        count = len(self._sessions)
        self._sessions.clear()
        self._locks.clear()
        if count:
            logger.info("Session store destroyed (cleared %d sessions)", count)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Session sweep failed")

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return now - session.last_accessed_at > self.timeout

    def _remove(self, session_id: str) -> bool:
        self._locks.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None
