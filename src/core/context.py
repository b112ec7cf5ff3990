from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from src.core.session import SessionState


@dataclass
class SessionContext:
    """Request-scoped context for one turn.
    Built by the router from the state snapshot and recent history.
    Skills read state ONLY through this context and return deltas."""

    user_id: str
    state: SessionState
    now: datetime
    timezone: str = "Asia/Kolkata"
    history: list[dict[str, Any]] = field(default_factory=list)
    user_name: str | None = None
    channel: str = "whatsapp"
    message_text: str = ""

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def with_state(self, state: SessionState) -> SessionContext:
        return SessionContext(
            user_id=self.user_id,
            state=state,
            now=self.now,
            timezone=self.timezone,
            history=self.history,
            user_name=self.user_name,
            channel=self.channel,
            message_text=self.message_text,
        )
