"""Call status mapping and transition rules."""
from outbound_agent.services.call_session.models import CallStatus

# Twilio CallStatus values -> internal status. Anything missing maps to FAILED.
_PROVIDER_STATUS_MAP = {
    "initiated": CallStatus.QUEUED,
    "queued": CallStatus.QUEUED,
    "ringing": CallStatus.RINGING,
    "answered": CallStatus.IN_PROGRESS,
    "in-progress": CallStatus.IN_PROGRESS,
    "completed": CallStatus.COMPLETED,
    "no-answer": CallStatus.NO_ANSWER,
}

# Forward order of the non-terminal stages; all terminal stages rank last.
_STATUS_RANK = {
    CallStatus.DRAFT: 0,
    CallStatus.QUEUED: 1,
    CallStatus.RINGING: 2,
    CallStatus.IN_PROGRESS: 3,
    CallStatus.COMPLETED: 4,
    CallStatus.NO_ANSWER: 4,
    CallStatus.FAILED: 4,
}


def map_provider_status(provider_status: str) -> CallStatus:
    """
    Translate a Twilio call status into the internal status.

    Unknown values (busy, canceled, typos, empty strings) fail safe to FAILED.
    """
    normalized = (provider_status or "").strip().lower()
    return _PROVIDER_STATUS_MAP.get(normalized, CallStatus.FAILED)


def is_transition_allowed(current: CallStatus, target: CallStatus) -> bool:
    """Return True if a session in ``current`` may move to ``target``."""
    if current.is_terminal:
        return False
    if current == target:
        return current == CallStatus.IN_PROGRESS
    return _STATUS_RANK[target] > _STATUS_RANK[current]
