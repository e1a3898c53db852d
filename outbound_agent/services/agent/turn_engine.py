"""Speech turn orchestration."""
import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from pydantic import BaseModel

from outbound_agent.services.agent.constants import FALLBACK_LINE, REPROMPT_LINE
from outbound_agent.services.agent.prompt import build_messages
from outbound_agent.services.call_session.models import SessionConfig, Turn, TurnRole
from outbound_agent.services.call_session.store import SessionNotFoundError, SessionStore
from outbound_agent.services.llm.completion import CompletionClient

logger = logging.getLogger(__name__)


class TurnResult(BaseModel):
    """What the caller should hear next."""

    reply_text: str
    reopen_prompt: bool = True
    # Question spoken inside the listening window after the reply, if any
    follow_up_prompt: Optional[str] = None


class TurnEngine:
    """Runs one speech-in / reply-out exchange for a session."""

    def __init__(self, store: SessionStore, completion_client: CompletionClient):
        self.store = store
        self.completion_client = completion_client
        self._exchange_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def handle_speech(self, session_id: str, speech_text: Optional[str]) -> TurnResult:
        """
        Process recognized speech for a session.

        Empty speech re-prompts with the opening question and leaves the
        transcript alone. Otherwise a user turn and exactly one assistant
        turn are appended, the latter holding the fallback line if the model
        fails or answers with nothing. Once the call has reached a terminal
        status the result asks for a hang-up instead of another prompt.

        Raises:
            SessionNotFoundError: if the session does not exist
        """
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        reopen_prompt = not session.status.is_terminal
        if not reopen_prompt:
            logger.info(
                f"[TURN] Speech after call ended ({session.status.value}), "
                f"closing the script - Session: {session_id}"
            )

        utterance = (speech_text or "").strip()
        if not utterance:
            logger.info(f"[TURN] Nothing heard, re-prompting - Session: {session_id}")
            return TurnResult(
                reply_text=REPROMPT_LINE,
                reopen_prompt=reopen_prompt,
                follow_up_prompt=session.config.opening_question,
            )

        # Serialises exchanges within this session only; the store lock is
        # released while the model is thinking.
        async with self.exchange_lock(session_id):
            history = await self.store.append_turn_and_history(
                session_id, TurnRole.USER, utterance
            )
            logger.info(
                f"[TURN] User said '{utterance[:200]}' - Session: {session_id}, "
                f"history: {len(history)} turns"
            )
            reply = await self._generate_reply(session_id, session.config, history)
            await self.store.append_turn(session_id, TurnRole.ASSISTANT, reply)

        logger.info(f"[TURN] Agent reply '{reply[:200]}' - Session: {session_id}")
        return TurnResult(reply_text=reply, reopen_prompt=reopen_prompt)

    def exchange_lock(self, session_id: str) -> asyncio.Lock:
        """Lock held for the whole of each exchange in a session."""
        return self._exchange_locks[session_id]

    async def _generate_reply(
        self, session_id: str, config: SessionConfig, history: List[Turn]
    ) -> str:
        try:
            content = await self.completion_client.complete(
                build_messages(config, history), config.temperature
            )
        except Exception as e:
            logger.error(
                f"[TURN] Completion failed, using fallback line - Session: {session_id}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return FALLBACK_LINE

        reply = (content or "").strip()
        if not reply:
            logger.warning(f"[TURN] Empty completion, using fallback line - Session: {session_id}")
            return FALLBACK_LINE
        return reply
