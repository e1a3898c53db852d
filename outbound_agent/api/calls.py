"""Outbound call launch endpoint."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from outbound_agent.core.dependencies import get_session_manager
from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.call_session.models import SessionConfig
from outbound_agent.services.telephony.calls import CallPlacementError

router = APIRouter()
logger = logging.getLogger(__name__)


class LaunchCallResponse(BaseModel):
    """Launch call response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    call_sid: Optional[str] = None
    status: str


@router.post("/api/calls", status_code=201, response_model=LaunchCallResponse)
async def launch_call(
    request: Request,
    payload: SessionConfig,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """
    Create a session and place the outbound call.

    Invalid payloads never reach this handler (FastAPI answers 422).
    """
    logger.info(
        f"[LAUNCH CALL] Request received - agent: {payload.agent_name}, "
        f"campaign: {payload.campaign or 'none'}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    if not session_manager.call_placer.caller_id:
        return JSONResponse(
            status_code=500,
            content={
                "error": "TWILIO_CALLER_ID is not configured. Configure it to launch outbound calls."
            },
        )
    if not session_manager.call_placer.public_base_url:
        return JSONResponse(
            status_code=500,
            content={
                "error": "PUBLIC_BASE_URL is missing. Set it to the publicly reachable "
                "domain handling Twilio webhooks."
            },
        )

    try:
        session = await session_manager.start_call(payload)
    except CallPlacementError as e:
        logger.error(f"[LAUNCH CALL] Call placement failed - Error: {str(e)}")
        return JSONResponse(status_code=502, content={"error": str(e)})

    logger.info(
        f"[LAUNCH CALL] Call launched - Session: {session.session_id}, CallSid: {session.call_sid}"
    )
    return LaunchCallResponse(
        session_id=session.session_id,
        call_sid=session.call_sid,
        status=session.status.value,
    )
