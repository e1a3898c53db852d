"""Twilio call status webhook endpoint."""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Form, Query, Request

from outbound_agent.core.dependencies import get_session_manager
from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.telephony.calls import STATUS_CALLBACK_PATH

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(STATUS_CALLBACK_PATH)
async def handle_call_status(
    request: Request,
    background_tasks: BackgroundTasks,
    session: Optional[str] = Query(None),
    CallSid: Optional[str] = Form(None),
    CallStatus: Optional[str] = Form(None),
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """
    Handle call status updates from Twilio.

    Always acknowledges with ok so Twilio does not retry; summaries of
    completed calls are produced after the acknowledgement is sent.
    """
    logger.info(
        f"[CALL STATUS] Received status update - Session: {session}, "
        f"CallSid: {CallSid}, CallStatus: {CallStatus}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    if not CallStatus:
        logger.warning(f"[CALL STATUS] Missing CallStatus - CallSid: {CallSid}")
        return {"ok": True}

    try:
        change = await session_manager.on_call_status(
            CallStatus,
            session_id=session,
            call_sid=CallSid,
            schedule=background_tasks.add_task,
        )
        if change is not None:
            logger.info(
                f"[CALL STATUS] Status {'applied' if change.applied else 'discarded'} - "
                f"CallSid: {CallSid}, now: {change.current.value}"
            )
    except Exception as e:
        logger.error(
            f"[CALL STATUS] Error handling call status update - CallSid: {CallSid}, "
            f"CallStatus: {CallStatus}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )

    return {"ok": True}
