"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from outbound_agent.api import calls, health, sessions
from outbound_agent.api.webhooks import status, voice
from outbound_agent.core.config import Settings, settings
from outbound_agent.core.logging import setup_logging
from outbound_agent.services.agent.summarizer import CallSummarizer
from outbound_agent.services.agent.turn_engine import TurnEngine
from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.call_session.store import SessionStore
from outbound_agent.services.llm.completion import CompletionClient
from outbound_agent.services.telephony.calls import TwilioCallPlacer


def build_session_manager(config: Settings) -> CallSessionManager:
    """Wire the session store and its collaborators."""
    store = SessionStore()
    completion_client = CompletionClient(
        api_key=config.openai_api_key,
        model=config.openai_model,
        timeout=config.openai_timeout,
    )
    call_placer = TwilioCallPlacer(
        account_sid=config.twilio_account_sid,
        auth_token=config.twilio_auth_token,
        caller_id=config.twilio_caller_id,
        public_base_url=config.public_base_url,
        machine_detection_timeout=config.machine_detection_timeout,
    )
    return CallSessionManager(
        store=store,
        turn_engine=TurnEngine(store, completion_client),
        summarizer=CallSummarizer(
            store, completion_client, temperature=config.summary_temperature
        ),
        call_placer=call_placer,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    app.state.session_manager = build_session_manager(settings)
    yield
    # Shutdown
    await app.state.session_manager.wait_for_background()


app = FastAPI(
    title="Outbound Agent",
    description="AI agent that places and conducts outbound phone calls",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(calls.router, tags=["calls"])
app.include_router(sessions.router, tags=["sessions"])
app.include_router(voice.router, tags=["webhooks"])
app.include_router(status.router, tags=["webhooks"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
