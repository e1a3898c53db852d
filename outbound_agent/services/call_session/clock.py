"""Clock and identifier source for call sessions."""
import uuid
from datetime import datetime, timezone
from typing import Optional


class Clock:
    """Hands out UTC timestamps that never go backwards, plus unique ids."""

    def __init__(self):
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        """Current UTC time, clamped so successive calls are non-decreasing."""
        current = datetime.now(timezone.utc)
        if self._last is not None and current < self._last:
            current = self._last
        self._last = current
        return current

    def new_id(self) -> str:
        """Return a fresh opaque identifier."""
        return str(uuid.uuid4())
