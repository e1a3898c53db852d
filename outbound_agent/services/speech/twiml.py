"""TwiML rendering for the voice script webhook."""
from twilio.twiml.voice_response import VoiceResponse

from outbound_agent.services.agent.turn_engine import TurnResult
from outbound_agent.services.call_session.models import SessionConfig

SPEECH_MODEL = "experimental_conversations"


class VoiceScriptRenderer:
    """Turns agent output into TwiML for Twilio to speak and listen."""

    def render_opening(self, config: SessionConfig, action_url: str) -> str:
        """Greeting, then listen while asking the opening question."""
        response = VoiceResponse()
        self._say(response, config, config.greeting)
        self._listen(response, config, action_url, config.opening_question)
        return str(response)

    def render_turn(self, result: TurnResult, config: SessionConfig, action_url: str) -> str:
        """
        Render a turn result.

        The reply is spoken inside the listening window unless a follow-up
        prompt is given, in which case the reply is spoken first and the
        follow-up is asked while listening.
        """
        response = VoiceResponse()
        if not result.reopen_prompt:
            self._say(response, config, result.reply_text)
            response.hangup()
        elif result.follow_up_prompt:
            self._say(response, config, result.reply_text)
            self._listen(response, config, action_url, result.follow_up_prompt)
        else:
            self._listen(response, config, action_url, result.reply_text)
        return str(response)

    def _say(self, target, config: SessionConfig, text: str) -> None:
        target.say(text, voice=config.voice.value, language=config.language.value)

    def _listen(self, response: VoiceResponse, config: SessionConfig, action_url: str, prompt: str) -> None:
        gather = response.gather(
            input="speech",
            action=action_url,
            method="POST",
            speech_timeout="auto",
            speech_model=SPEECH_MODEL,
            language=config.language.value,
        )
        self._say(gather, config, prompt)
        # Silence falls through to the same webhook with an empty SpeechResult
        response.redirect(action_url, method="POST")
