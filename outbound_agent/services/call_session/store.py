"""In-memory call session store."""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional

from outbound_agent.services.call_session.clock import Clock
from outbound_agent.services.call_session.models import (
    CallSession,
    CallStatus,
    SessionConfig,
    StatusChange,
    Turn,
    TurnRole,
)
from outbound_agent.services.call_session.status import is_transition_allowed

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """A mutation would break a session invariant."""


class CallIdConflictError(SessionStateError):
    """The session already carries a different provider call id."""


class SessionNotFoundError(LookupError):
    """No session is registered under the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id


@dataclass
class _Entry:
    session: CallSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """
    Authoritative table of call sessions for the lifetime of the process.

    Every mutation of a session runs under that session's own lock, so a
    read-modify-write sequence never interleaves with another mutation of
    the same session. Sessions do not share locks with each other. Readers
    only ever receive deep copies.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or Clock()
        self._entries: Dict[str, _Entry] = {}
        self._session_ids_by_call_sid: Dict[str, str] = {}
        # Guards the two tables, not the sessions in them
        self._lock = asyncio.Lock()

    async def create(self, config: SessionConfig) -> CallSession:
        """Register a new draft session for ``config``."""
        now = self._clock.now()
        session = CallSession(
            session_id=self._clock.new_id(),
            config=config,
            status=CallStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            self._entries[session.session_id] = _Entry(session=session)

        logger.info(
            f"[SESSION STORE] Created session {session.session_id} "
            f"for agent '{config.agent_name}'"
        )
        return session.model_copy(deep=True)

    async def get(self, session_id: str) -> Optional[CallSession]:
        """Snapshot of a session, or None if unknown."""
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        async with entry.lock:
            return entry.session.model_copy(deep=True)

    async def find_by_call_sid(self, call_sid: str) -> Optional[CallSession]:
        """Snapshot of the session that owns a provider call id."""
        session_id = self._session_ids_by_call_sid.get(call_sid)
        if session_id is None:
            return None
        return await self.get(session_id)

    async def set_call_sid(self, session_id: str, call_sid: str) -> None:
        """
        Record the provider call id once.

        Setting the same id again is a no-op; a different id raises
        CallIdConflictError.
        """
        async with self._mutate(session_id) as session:
            if session.call_sid == call_sid:
                return
            if session.call_sid is not None:
                raise CallIdConflictError(
                    f"Session {session_id} already has call sid "
                    f"{session.call_sid}, refusing {call_sid}"
                )
            async with self._lock:
                self._session_ids_by_call_sid[call_sid] = session_id
            session.call_sid = call_sid
            self._touch(session)

    async def append_turn(self, session_id: str, role: TurnRole, content: str) -> Turn:
        """Append a turn to the transcript and return it."""
        async with self._mutate(session_id) as session:
            return self._append(session, role, content)

    async def append_turn_and_history(
        self, session_id: str, role: TurnRole, content: str
    ) -> List[Turn]:
        """Append a turn and return the resulting transcript in one step."""
        async with self._mutate(session_id) as session:
            self._append(session, role, content)
            return [turn.model_copy() for turn in session.transcript]

    async def ensure_greeting_captured(self, session_id: str, greeting: str) -> bool:
        """
        Insert the system greeting turn unless one exists.

        Returns True when the greeting was inserted by this call.
        """
        async with self._mutate(session_id) as session:
            if session.has_greeting():
                return False
            if session.transcript:
                logger.warning(
                    f"[SESSION STORE] Not capturing greeting for session {session_id}: "
                    f"conversation already has {len(session.transcript)} turns"
                )
                return False
            self._append(session, TurnRole.SYSTEM, greeting)
            return True

    async def update_status(
        self, session_id: str, status: CallStatus, record_discard: bool = True
    ) -> StatusChange:
        """
        Apply a status transition if it moves the session forward.

        Stale or duplicate transitions are discarded rather than raised, and
        counted on the session unless ``record_discard`` is False.
        """
        async with self._mutate(session_id) as session:
            previous = session.status
            applied = is_transition_allowed(previous, status)
            if applied:
                session.status = status
                if previous != status:
                    logger.info(
                        f"[SESSION STORE] Status {previous.value} -> {status.value} "
                        f"- Session: {session_id}"
                    )
            elif record_discard:
                session.discarded_status_updates += 1
                logger.info(
                    f"[SESSION STORE] Discarded status {status.value} while "
                    f"{previous.value} - Session: {session_id}, "
                    f"discarded so far: {session.discarded_status_updates}"
                )
            self._touch(session)
            return StatusChange(previous=previous, current=session.status, applied=applied)

    async def set_summary(self, session_id: str, summary: str) -> bool:
        """Store the call summary; only once and only after completion."""
        async with self._mutate(session_id) as session:
            if session.status != CallStatus.COMPLETED or session.summary is not None:
                logger.warning(
                    f"[SESSION STORE] Refused summary for session {session_id} "
                    f"(status: {session.status.value}, "
                    f"has summary: {session.summary is not None})"
                )
                return False
            session.summary = summary
            self._touch(session)
            return True

    async def set_error(self, session_id: str, message: str) -> None:
        """Record the most recent operational failure."""
        async with self._mutate(session_id) as session:
            session.last_error = message
            self._touch(session)

    async def list_all(self, limit: Optional[int] = None) -> List[CallSession]:
        """Snapshots of every session, newest first."""
        entries = list(self._entries.values())
        snapshots = []
        for entry in entries:
            async with entry.lock:
                snapshots.append(entry.session.model_copy(deep=True))
        snapshots.sort(key=lambda s: s.created_at, reverse=True)
        if limit is not None:
            snapshots = snapshots[:limit]
        return snapshots

    @asynccontextmanager
    async def _mutate(self, session_id: str) -> AsyncIterator[CallSession]:
        entry = self._entries.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        async with entry.lock:
            yield entry.session

    def _append(self, session: CallSession, role: TurnRole, content: str) -> Turn:
        turn = Turn(
            id=self._clock.new_id(),
            role=role,
            content=content,
            timestamp=self._clock.now(),
        )
        session.transcript.append(turn)
        self._touch(session)
        return turn

    def _touch(self, session: CallSession) -> None:
        session.updated_at = self._clock.now()
