"""Call session manager."""
import asyncio
import logging
from typing import Any, Callable, List, Optional, Set

from outbound_agent.services.agent.summarizer import CallSummarizer
from outbound_agent.services.agent.turn_engine import TurnEngine, TurnResult
from outbound_agent.services.call_session.models import (
    CallSession,
    CallStatus,
    SessionConfig,
    StatusChange,
)
from outbound_agent.services.call_session.status import map_provider_status
from outbound_agent.services.call_session.store import (
    CallIdConflictError,
    SessionNotFoundError,
    SessionStore,
)
from outbound_agent.services.telephony.calls import CallPlacementError, TwilioCallPlacer

logger = logging.getLogger(__name__)

# Runs ``func(*args)`` after the current request has been answered,
# e.g. ``fastapi.BackgroundTasks.add_task``
Scheduler = Callable[..., Any]


class CallSessionManager:
    """Entry point for everything the webhooks do to a call session."""

    def __init__(
        self,
        store: SessionStore,
        turn_engine: TurnEngine,
        summarizer: CallSummarizer,
        call_placer: TwilioCallPlacer,
    ):
        self.store = store
        self.turn_engine = turn_engine
        self.summarizer = summarizer
        self.call_placer = call_placer
        self._background: Set[asyncio.Task] = set()

    async def create_session(self, config: SessionConfig) -> CallSession:
        """Register a draft session without dialing."""
        return await self.store.create(config)

    async def start_call(self, config: SessionConfig) -> CallSession:
        """
        Create a session and dial the target number.

        On success the session carries the Twilio call SID and is queued.

        Raises:
            CallPlacementError: the failure is also recorded as the session's
                last error and the session stays in draft
        """
        session = await self.create_session(config)
        try:
            call_sid = await self.call_placer.place_call(session.session_id, config)
        except CallPlacementError as e:
            await self.store.set_error(session.session_id, str(e))
            raise

        await self.store.set_call_sid(session.session_id, call_sid)
        await self.store.update_status(session.session_id, CallStatus.QUEUED)
        return await self._require(session.session_id)

    async def on_call_answered(self, session_id: str) -> CallSession:
        """Capture the greeting and mark the call live."""
        session = await self._require(session_id)
        await self.store.ensure_greeting_captured(session_id, session.config.greeting)
        await self.store.update_status(
            session_id, CallStatus.IN_PROGRESS, record_discard=False
        )
        return await self._require(session_id)

    async def on_speech_turn(self, session_id: str, speech_text: Optional[str]) -> TurnResult:
        """Run one conversation exchange for recognized speech."""
        await self.store.update_status(
            session_id, CallStatus.IN_PROGRESS, record_discard=False
        )
        return await self.turn_engine.handle_speech(session_id, speech_text)

    async def on_call_status(
        self,
        provider_status: str,
        session_id: Optional[str] = None,
        call_sid: Optional[str] = None,
        schedule: Optional[Scheduler] = None,
    ) -> Optional[StatusChange]:
        """
        Apply a Twilio status callback.

        The session is looked up by id first and by call SID second. When the
        call completes, summarization is handed to ``schedule`` (or started
        as a detached task) so it never delays the callback response.

        Returns:
            The status change, or None if no session matched
        """
        session = await self._resolve(session_id, call_sid)
        if session is None:
            logger.info(
                f"[CALL STATUS] No session for callback - Session: {session_id}, "
                f"CallSid: {call_sid}, CallStatus: {provider_status}"
            )
            return None

        if call_sid and session.call_sid is None:
            try:
                await self.store.set_call_sid(session.session_id, call_sid)
            except CallIdConflictError as e:
                logger.warning(f"[CALL STATUS] {e}")
        elif call_sid and session.call_sid != call_sid:
            logger.warning(
                f"[CALL STATUS] Callback CallSid {call_sid} does not match "
                f"session {session.session_id} ({session.call_sid})"
            )

        status = map_provider_status(provider_status)
        change = await self.store.update_status(session.session_id, status)

        if change.entered_completed:
            self._schedule_summary(session.session_id, schedule)
        return change

    async def list_sessions(self, limit: Optional[int] = None) -> List[CallSession]:
        """Session snapshots for the dashboard, newest first."""
        return await self.store.list_all(limit=limit)

    async def summarize_call(self, session_id: str) -> Optional[str]:
        """
        Summarize a completed call once any in-flight speech turn has landed.

        Waits on the session's exchange lock so a reply still being generated
        when the call ended is part of the summary.
        """
        async with self.turn_engine.exchange_lock(session_id):
            return await self.summarizer.summarize(session_id)

    async def wait_for_background(self) -> None:
        """Wait for detached summarization tasks to finish."""
        if self._background:
            await asyncio.gather(*list(self._background))

    def _schedule_summary(self, session_id: str, schedule: Optional[Scheduler]) -> None:
        logger.info(f"[CALL STATUS] Call completed, scheduling summary - Session: {session_id}")
        if schedule is not None:
            schedule(self.summarize_call, session_id)
            return
        task = asyncio.create_task(self.summarize_call(session_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _resolve(
        self, session_id: Optional[str], call_sid: Optional[str]
    ) -> Optional[CallSession]:
        session = None
        if session_id:
            session = await self.store.get(session_id)
        if session is None and call_sid:
            session = await self.store.find_by_call_sid(call_sid)
        return session

    async def _require(self, session_id: str) -> CallSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session
