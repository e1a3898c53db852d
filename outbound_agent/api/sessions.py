"""Session listing API for the dashboard."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from outbound_agent.core.dependencies import get_session_manager
from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.call_session.models import CallSession

router = APIRouter()
logger = logging.getLogger(__name__)


class TurnResponse(BaseModel):
    """Transcript turn response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    role: str
    content: str
    timestamp: datetime


class SessionResponse(BaseModel):
    """Session snapshot response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    status: str
    agent_name: str
    voice: str
    language: str
    objective: str
    customer_name: Optional[str] = None
    target_number: str
    company: Optional[str] = None
    campaign: Optional[str] = None
    summary: Optional[str] = None
    call_sid: Optional[str] = None
    transcript: List[TurnResponse] = []
    last_error: Optional[str] = None
    discarded_status_updates: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: CallSession) -> "SessionResponse":
        config = session.config
        return cls(
            session_id=session.session_id,
            status=session.status.value,
            agent_name=config.agent_name,
            voice=config.voice.value,
            language=config.language.value,
            objective=config.objective,
            customer_name=config.customer_name,
            target_number=config.to,
            company=config.company,
            campaign=config.campaign,
            summary=session.summary,
            call_sid=session.call_sid,
            transcript=[
                TurnResponse(
                    id=turn.id,
                    role=turn.role.value,
                    content=turn.content,
                    timestamp=turn.timestamp,
                )
                for turn in session.transcript
            ],
            last_error=session.last_error,
            discarded_status_updates=session.discarded_status_updates,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class SessionListResponse(BaseModel):
    """Session list response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sessions: List[SessionResponse]


@router.get("/api/sessions", response_model=SessionListResponse)
async def list_sessions(
    request: Request,
    limit: int = Query(100, ge=1, le=1000),
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Get session snapshots, newest first."""
    logger.debug(
        f"[SESSIONS] Listing sessions - limit: {limit}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    sessions = await session_manager.list_sessions(limit=limit)
    return SessionListResponse(
        sessions=[SessionResponse.from_session(session) for session in sessions]
    )
