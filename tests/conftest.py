"""Shared test fixtures and configuration."""
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "test-sid")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-token")
os.environ.setdefault("TWILIO_CALLER_ID", "+15555550100")
os.environ.setdefault("PUBLIC_BASE_URL", "https://agent.example.com")

from outbound_agent.main import app
from outbound_agent.core.dependencies import get_session_manager
from outbound_agent.services.agent.summarizer import CallSummarizer
from outbound_agent.services.agent.turn_engine import TurnEngine
from outbound_agent.services.call_session.manager import CallSessionManager
from outbound_agent.services.call_session.models import SessionConfig, Voice
from outbound_agent.services.call_session.store import SessionStore
from outbound_agent.services.llm.completion import CompletionClient
from outbound_agent.services.telephony.calls import TwilioCallPlacer


class FakeClock:
    """Clock that advances one second per reading, with sequential ids."""

    def __init__(self):
        self._current = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self._ids = 0

    def now(self) -> datetime:
        self._current += timedelta(seconds=1)
        return self._current

    def new_id(self) -> str:
        self._ids += 1
        return f"id-{self._ids}"


@pytest.fixture
def clock():
    """Deterministic clock."""
    return FakeClock()


@pytest.fixture
def store(clock):
    """Empty session store."""
    return SessionStore(clock=clock)


@pytest.fixture
def session_config():
    """Launch settings for a typical solar follow-up call."""
    return SessionConfig(
        to="+15555550123",
        agent_name="Aurora Hale",
        persona="Strategic, empathetic, and sharp.",
        greeting="Hi, this is Aurora",
        objective="Reconnect with residential solar leads and book a consultation.",
        opening_question="Is now a good time to talk about your solar plans?",
        guardrails="Never claim incentives that have not been verified.",
        closing_strategy="Confirm the appointment and thank the customer by name.",
        voice=Voice.JOANNA,
        temperature=0.65,
        customer_name="Sam",
        company="Nebula Solar",
        campaign="Winter Savings Revival",
    )


@pytest.fixture
def launch_payload():
    """camelCase JSON body for POST /api/calls, as the dashboard sends it."""
    return {
        "to": "+15555550123",
        "agentName": "Aurora Hale",
        "greeting": "Hi there, this is Aurora with Nebula Solar.",
        "objective": "Qualify intent and book a follow-up consultation.",
        "voice": "Polly.Amy",
        "temperature": 0.5,
        "customerName": "Sam",
    }


@pytest.fixture
def completion_client():
    """Mock completion capability."""
    client = Mock(spec=CompletionClient)
    client.complete = AsyncMock(return_value="Great, let's schedule a time")
    return client


@pytest.fixture
def call_placer():
    """Mock call placement capability."""
    placer = Mock(spec=TwilioCallPlacer)
    placer.caller_id = "+15555550100"
    placer.public_base_url = "https://agent.example.com"
    placer.place_call = AsyncMock(return_value="CA0123456789")
    return placer


@pytest.fixture
def turn_engine(store, completion_client):
    """Turn engine over the test store."""
    return TurnEngine(store, completion_client)


@pytest.fixture
def summarizer(store, completion_client):
    """Summarizer over the test store."""
    return CallSummarizer(store, completion_client, temperature=0.4)


@pytest.fixture
def session_manager(store, turn_engine, summarizer, call_placer):
    """Session manager wired to mocks."""
    return CallSessionManager(
        store=store,
        turn_engine=turn_engine,
        summarizer=summarizer,
        call_placer=call_placer,
    )


@pytest.fixture
def test_client(session_manager):
    """Create FastAPI test client with the mocked session manager."""
    app.dependency_overrides[get_session_manager] = lambda: session_manager

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
