"""Call session models."""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_OPENING_QUESTION = "Do you have a couple of minutes to chat?"


class CallStatus(str, Enum):
    """Lifecycle stage of an outbound call."""

    DRAFT = "draft"
    QUEUED = "queued"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    NO_ANSWER = "no-answer"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {CallStatus.COMPLETED, CallStatus.NO_ANSWER, CallStatus.FAILED}
)


class TurnRole(str, Enum):
    """Speaker of a transcript turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Voice(str, Enum):
    """Twilio <Say> voices the agent may speak with."""

    JOANNA = "Polly.Joanna"
    MATTHEW = "Polly.Matthew"
    AMY = "Polly.Amy"
    LUPE = "Polly.Lupe"
    CELINE = "Polly.Celine"

    @property
    def native_language(self) -> "Language":
        return _VOICE_LANGUAGES[self]


class Language(str, Enum):
    """Speech recognition / synthesis languages."""

    EN_US = "en-US"
    EN_GB = "en-GB"
    ES_ES = "es-ES"
    FR_FR = "fr-FR"


_VOICE_LANGUAGES = {
    Voice.JOANNA: Language.EN_US,
    Voice.MATTHEW: Language.EN_US,
    Voice.AMY: Language.EN_GB,
    Voice.LUPE: Language.ES_ES,
    Voice.CELINE: Language.FR_FR,
}


class SessionConfig(BaseModel):
    """Agent and call settings captured when the call is requested."""

    # Dashboard clients send camelCase keys; snake_case is accepted too
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    to: str = Field(min_length=8, description="Destination number, E.164")
    agent_name: str = Field(min_length=2)
    persona: str = ""
    greeting: str = Field(min_length=6)
    objective: str = Field(min_length=6)
    opening_question: str = DEFAULT_OPENING_QUESTION
    guardrails: str = ""
    closing_strategy: str = ""
    voice: Voice
    language: Language
    temperature: float = Field(default=0.6, ge=0, le=1.5)
    customer_name: Optional[str] = None
    company: Optional[str] = None
    campaign: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def default_language_from_voice(cls, data: Any) -> Any:
        """Fill in the voice's native language when none was given."""
        if isinstance(data, dict) and not data.get("language"):
            voice = data.get("voice")
            if isinstance(voice, str) and voice in _VOICE_LANGUAGES:
                data = {**data, "language": _VOICE_LANGUAGES[voice]}
        return data


class Turn(BaseModel):
    """One utterance in a session transcript."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: TurnRole
    content: str = Field(min_length=1)
    timestamp: datetime


class CallSession(BaseModel):
    """A single outbound conversation and its accumulated state."""

    session_id: str
    config: SessionConfig
    status: CallStatus = CallStatus.DRAFT
    call_sid: Optional[str] = None
    transcript: List[Turn] = []
    summary: Optional[str] = None
    last_error: Optional[str] = None
    discarded_status_updates: int = 0
    created_at: datetime
    updated_at: datetime

    def has_greeting(self) -> bool:
        return any(turn.role == TurnRole.SYSTEM for turn in self.transcript)

    def conversation_turns(self) -> List[Turn]:
        """Transcript without system turns."""
        return [turn for turn in self.transcript if turn.role != TurnRole.SYSTEM]


class StatusChange(BaseModel):
    """Outcome of a status update request."""

    previous: CallStatus
    current: CallStatus
    applied: bool

    @property
    def entered_completed(self) -> bool:
        return (
            self.applied
            and self.current == CallStatus.COMPLETED
            and self.previous != CallStatus.COMPLETED
        )
