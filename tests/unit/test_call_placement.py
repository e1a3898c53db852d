"""Unit tests for Twilio call placement."""
from unittest.mock import Mock

import pytest

from outbound_agent.services.telephony.calls import (
    STATUS_CALLBACK_EVENTS,
    CallPlacementError,
    TwilioCallPlacer,
    build_webhook_url,
)


@pytest.fixture
def twilio_client():
    """Mock Twilio REST client."""
    client = Mock()
    client.calls.create.return_value = Mock(sid="CA555")
    return client


@pytest.fixture
def placer(twilio_client):
    """Call placer over the mock client."""
    return TwilioCallPlacer(
        account_sid="AC-test",
        auth_token="token",
        caller_id="+15555550100",
        public_base_url="https://agent.example.com/",
        client=twilio_client,
    )


def test_build_webhook_url():
    """Test webhook URLs carry the session id."""
    assert (
        build_webhook_url("https://agent.example.com/", "/webhooks/voice/status", "abc-123")
        == "https://agent.example.com/webhooks/voice/status?session=abc-123"
    )


@pytest.mark.asyncio
async def test_place_call(placer, twilio_client, session_config):
    """Test the Twilio request for an outbound call."""
    call_sid = await placer.place_call("abc-123", session_config)

    assert call_sid == "CA555"
    kwargs = twilio_client.calls.create.call_args.kwargs
    assert kwargs["to"] == "+15555550123"
    assert kwargs["from_"] == "+15555550100"
    assert kwargs["url"] == "https://agent.example.com/webhooks/voice/script?session=abc-123"
    assert kwargs["method"] == "GET"
    assert kwargs["status_callback"] == (
        "https://agent.example.com/webhooks/voice/status?session=abc-123"
    )
    assert kwargs["status_callback_event"] == STATUS_CALLBACK_EVENTS
    assert kwargs["status_callback_method"] == "POST"
    assert kwargs["machine_detection"] == "Enable"
    assert kwargs["machine_detection_timeout"] == 3


@pytest.mark.asyncio
async def test_twilio_error_is_wrapped(placer, twilio_client, session_config):
    """Test provider errors surface as CallPlacementError."""
    twilio_client.calls.create.side_effect = RuntimeError("Unable to create record")

    with pytest.raises(CallPlacementError, match="Unable to create record"):
        await placer.place_call("abc-123", session_config)


@pytest.mark.asyncio
async def test_unconfigured_placer_refuses(twilio_client, session_config):
    """Test that a missing caller id stops the call before Twilio is contacted."""
    placer = TwilioCallPlacer(
        account_sid="AC-test",
        auth_token="token",
        caller_id=None,
        public_base_url="https://agent.example.com",
        client=twilio_client,
    )

    assert not placer.is_configured
    with pytest.raises(CallPlacementError):
        await placer.place_call("abc-123", session_config)
    twilio_client.calls.create.assert_not_called()
