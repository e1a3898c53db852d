"""Twilio voice script webhook endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import Response

from outbound_agent.core.config import settings
from outbound_agent.core.dependencies import get_session_manager, get_voice_renderer
from outbound_agent.services.agent.constants import APOLOGY_LINE
from outbound_agent.services.agent.turn_engine import TurnResult
from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.call_session.store import SessionNotFoundError
from outbound_agent.services.speech.twiml import VoiceScriptRenderer
from outbound_agent.services.telephony.calls import VOICE_SCRIPT_PATH, build_webhook_url

router = APIRouter()
logger = logging.getLogger(__name__)


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute URLs.

    Uses PUBLIC_BASE_URL if set (Twilio needs the public origin when running
    behind ngrok or a proxy), otherwise the request's own base URL.
    """
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def xml_response(twiml: str) -> Response:
    return Response(content=twiml, media_type="text/xml")


@router.get(VOICE_SCRIPT_PATH)
async def handle_call_answered(
    request: Request,
    session: str = Query(...),
    session_manager: CallSessionManager = Depends(get_session_manager),
    renderer: VoiceScriptRenderer = Depends(get_voice_renderer),
):
    """
    Handle the call being answered.

    Twilio fetches this once the callee picks up; the response speaks the
    greeting and starts listening.
    """
    logger.info(f"[CALL ANSWERED] Voice script requested - Session: {session}")
    try:
        call_session = await session_manager.on_call_answered(session)
    except SessionNotFoundError:
        logger.warning(f"[CALL ANSWERED] Unknown session: {session}")
        raise HTTPException(status_code=404, detail="Unknown session")

    action_url = build_webhook_url(get_base_url(request), VOICE_SCRIPT_PATH, session)
    twiml = renderer.render_opening(call_session.config, action_url)
    logger.info(
        f"[CALL ANSWERED] Greeting sent - Session: {session}, TwiML length: {len(twiml)} bytes"
    )
    return xml_response(twiml)


@router.post(VOICE_SCRIPT_PATH)
async def handle_speech(
    request: Request,
    session: str = Query(...),
    SpeechResult: Optional[str] = Form(None),
    session_manager: CallSessionManager = Depends(get_session_manager),
    renderer: VoiceScriptRenderer = Depends(get_voice_renderer),
):
    """
    Handle gathered speech from Twilio.

    Called after Twilio collects the callee's speech, and again with no
    SpeechResult when the listening window times out.
    """
    logger.info(
        f"[SPEECH] Received speech input - Session: {session}, "
        f"SpeechResult length: {len(SpeechResult) if SpeechResult else 0}"
    )

    call_session = await session_manager.store.get(session)
    if call_session is None:
        logger.warning(f"[SPEECH] Unknown session: {session}")
        raise HTTPException(status_code=404, detail="Unknown session")

    action_url = build_webhook_url(get_base_url(request), VOICE_SCRIPT_PATH, session)
    try:
        result = await session_manager.on_speech_turn(session, SpeechResult)
    except Exception as e:
        logger.error(
            f"[SPEECH] Error processing speech input - Session: {session}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        # Keep the call alive with a graceful prompt
        result = TurnResult(reply_text=APOLOGY_LINE)

    twiml = renderer.render_turn(result, call_session.config, action_url)
    logger.info(f"[SPEECH] Reply sent - Session: {session}, TwiML length: {len(twiml)} bytes")
    return xml_response(twiml)
