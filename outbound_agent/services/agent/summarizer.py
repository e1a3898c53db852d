"""Post-call summarization."""
import logging
from typing import Optional

from outbound_agent.services.agent.constants import SUMMARY_UNAVAILABLE
from outbound_agent.services.agent.prompt import build_summary_messages
from outbound_agent.services.call_session.models import CallStatus
from outbound_agent.services.call_session.store import SessionStore
from outbound_agent.services.llm.completion import CompletionClient

logger = logging.getLogger(__name__)


class CallSummarizer:
    """Asks the model for a summary of a completed call and stores it."""

    def __init__(
        self,
        store: SessionStore,
        completion_client: CompletionClient,
        temperature: float = 0.4,
    ):
        self.store = store
        self.completion_client = completion_client
        self.temperature = temperature

    async def summarize(self, session_id: str) -> Optional[str]:
        """
        Summarize a completed call.

        Best effort: failures are logged and leave the summary unset.

        Returns:
            The stored summary, or None if nothing was stored
        """
        session = await self.store.get(session_id)
        if session is None:
            logger.warning(f"[SUMMARY] Unknown session {session_id}")
            return None
        if session.status != CallStatus.COMPLETED or session.summary is not None:
            logger.debug(
                f"[SUMMARY] Skipping session {session_id} "
                f"(status: {session.status.value}, has summary: {session.summary is not None})"
            )
            return None
        if not session.conversation_turns():
            logger.info(f"[SUMMARY] No conversation to summarize - Session: {session_id}")
            return None

        try:
            content = await self.completion_client.complete(
                build_summary_messages(session.transcript), self.temperature
            )
        except Exception as e:
            logger.error(
                f"[SUMMARY] Failed to summarize call - Session: {session_id}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return None

        summary = (content or "").strip() or SUMMARY_UNAVAILABLE
        if not await self.store.set_summary(session_id, summary):
            return None

        logger.info(f"[SUMMARY] Stored summary ({len(summary)} chars) - Session: {session_id}")
        return summary
