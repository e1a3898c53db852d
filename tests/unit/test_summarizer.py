"""Unit tests for post-call summarization."""
import pytest

from outbound_agent.services.agent.constants import SUMMARY_INSTRUCTIONS, SUMMARY_UNAVAILABLE
from outbound_agent.services.call_session.models import CallStatus, TurnRole


async def _completed_call(store, session_config, lines):
    session = await store.create(session_config)
    await store.ensure_greeting_captured(session.session_id, session_config.greeting)
    for role, content in lines:
        await store.append_turn(session.session_id, role, content)
    await store.update_status(session.session_id, CallStatus.COMPLETED)
    return session


class TestCallSummarizer:
    """Test the summarizer."""

    @pytest.mark.asyncio
    async def test_summarizes_completed_call(
        self, summarizer, store, completion_client, session_config
    ):
        """Test that a completed conversation gets a summary."""
        completion_client.complete.return_value = "- Interested\nNext: book visit"
        session = await _completed_call(
            store,
            session_config,
            [(TurnRole.USER, "I'm interested"), (TurnRole.ASSISTANT, "Great!")],
        )

        summary = await summarizer.summarize(session.session_id)

        assert summary == "- Interested\nNext: book visit"
        assert (await store.get(session.session_id)).summary == summary

    @pytest.mark.asyncio
    async def test_summary_request_shape(
        self, summarizer, store, completion_client, session_config
    ):
        """Test the request labels roles and leaves out the greeting."""
        session = await _completed_call(
            store,
            session_config,
            [(TurnRole.USER, "I'm interested"), (TurnRole.ASSISTANT, "Great!")],
        )

        await summarizer.summarize(session.session_id)

        messages, temperature = completion_client.complete.call_args.args
        assert temperature == 0.4
        assert messages[0] == {"role": "system", "content": SUMMARY_INSTRUCTIONS}
        assert messages[1]["content"] == "USER: I'm interested\nASSISTANT: Great!"

    @pytest.mark.asyncio
    async def test_skips_greeting_only_transcript(
        self, summarizer, store, completion_client, session_config
    ):
        """Test that a call with no conversation is not summarized."""
        session = await _completed_call(store, session_config, [])

        assert await summarizer.summarize(session.session_id) is None
        completion_client.complete.assert_not_called()
        assert (await store.get(session.session_id)).summary is None

    @pytest.mark.asyncio
    async def test_skips_calls_that_are_not_completed(
        self, summarizer, store, completion_client, session_config
    ):
        """Test that live or failed calls are not summarized."""
        session = await store.create(session_config)
        await store.append_turn(session.session_id, TurnRole.USER, "Hello?")
        await store.update_status(session.session_id, CallStatus.FAILED)

        assert await summarizer.summarize(session.session_id) is None
        completion_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_leaves_summary_unset(
        self, summarizer, store, completion_client, session_config
    ):
        """Test that model errors are absorbed."""
        completion_client.complete.side_effect = RuntimeError("rate limited")
        session = await _completed_call(
            store, session_config, [(TurnRole.USER, "Call me later")]
        )

        assert await summarizer.summarize(session.session_id) is None

        stored = await store.get(session.session_id)
        assert stored.summary is None
        assert stored.status == CallStatus.COMPLETED
        assert stored.last_error is None

    @pytest.mark.asyncio
    async def test_empty_output_stores_placeholder(
        self, summarizer, store, completion_client, session_config
    ):
        """Test that a blank completion stores the placeholder text."""
        completion_client.complete.return_value = "  "
        session = await _completed_call(
            store, session_config, [(TurnRole.USER, "Call me later")]
        )

        assert await summarizer.summarize(session.session_id) == SUMMARY_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_second_run_keeps_first_summary(
        self, summarizer, store, completion_client, session_config
    ):
        """Test that summarizing twice never changes the summary."""
        session = await _completed_call(
            store, session_config, [(TurnRole.USER, "Call me later")]
        )
        completion_client.complete.return_value = "first"
        await summarizer.summarize(session.session_id)
        completion_client.complete.return_value = "second"

        assert await summarizer.summarize(session.session_id) is None
        assert (await store.get(session.session_id)).summary == "first"
        assert completion_client.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_session(self, summarizer):
        """Test that unknown sessions are ignored."""
        assert await summarizer.summarize("missing") is None
