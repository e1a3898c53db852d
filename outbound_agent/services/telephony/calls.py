"""Outbound call placement through Twilio."""
import asyncio
import logging
from typing import Optional
from urllib.parse import urlencode

from twilio.rest import Client

from outbound_agent.services.call_session.models import SessionConfig

logger = logging.getLogger(__name__)

VOICE_SCRIPT_PATH = "/webhooks/voice/script"
STATUS_CALLBACK_PATH = "/webhooks/voice/status"

STATUS_CALLBACK_EVENTS = [
    "initiated",
    "queued",
    "ringing",
    "answered",
    "completed",
    "busy",
    "failed",
    "no-answer",
    "canceled",
]


class CallPlacementError(Exception):
    """Twilio refused the call or could not be reached."""


def build_webhook_url(base_url: str, path: str, session_id: str) -> str:
    """Absolute webhook URL carrying the session id as a query parameter."""
    return f"{base_url.rstrip('/')}{path}?{urlencode({'session': session_id})}"


class TwilioCallPlacer:
    """Places outbound calls that are driven by this app's webhooks."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        caller_id: Optional[str],
        public_base_url: Optional[str],
        machine_detection_timeout: int = 3,
        client: Optional[Client] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.caller_id = caller_id
        self.public_base_url = public_base_url
        self.machine_detection_timeout = machine_detection_timeout
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.caller_id and self.public_base_url)

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    async def place_call(self, session_id: str, config: SessionConfig) -> str:
        """
        Dial ``config.to`` and point Twilio at the session's webhooks.

        Returns:
            The Twilio call SID

        Raises:
            CallPlacementError: on any configuration, transport or API failure
        """
        if not self.is_configured:
            raise CallPlacementError(
                "Outbound calling is not configured: set TWILIO_CALLER_ID and PUBLIC_BASE_URL"
            )

        voice_url = build_webhook_url(self.public_base_url, VOICE_SCRIPT_PATH, session_id)
        status_url = build_webhook_url(self.public_base_url, STATUS_CALLBACK_PATH, session_id)
        logger.info(
            f"[CALL PLACEMENT] Dialing {config.to} - Session: {session_id}, "
            f"voice URL: {voice_url}"
        )

        try:
            # The Twilio REST client is synchronous
            call = await asyncio.to_thread(
                self._get_client().calls.create,
                to=config.to,
                from_=self.caller_id,
                url=voice_url,
                method="GET",
                status_callback=status_url,
                status_callback_event=STATUS_CALLBACK_EVENTS,
                status_callback_method="POST",
                machine_detection="Enable",
                machine_detection_timeout=self.machine_detection_timeout,
            )
        except Exception as e:
            logger.error(
                f"[CALL PLACEMENT] Twilio rejected call - Session: {session_id}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
            raise CallPlacementError(str(e) or "Failed to initiate call") from e

        logger.info(f"[CALL PLACEMENT] Call queued - Session: {session_id}, CallSid: {call.sid}")
        return call.sid
