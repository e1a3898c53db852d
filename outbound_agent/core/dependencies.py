"""FastAPI dependencies."""
from fastapi import Request

from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.speech.twiml import VoiceScriptRenderer


def get_session_manager(request: Request) -> CallSessionManager:
    """Get the session manager built at application startup."""
    return request.app.state.session_manager


def get_voice_renderer() -> VoiceScriptRenderer:
    """Get TwiML renderer instance."""
    return VoiceScriptRenderer()
