"""
Outward lifecycle events, serialized as one JSON object per WebSocket message:
{ "type": ..., "timestamp": unix_ms, ...payload }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from meeting_copilot.transcript.models import unix_ms

SESSION_STARTED = "session-started"
UTTERANCE_READY = "utterance-ready"
SESSION_ENDING = "session-ending"
SESSION_CLOSED = "session-closed"


@dataclass
class SessionEvent:
    type: str
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=unix_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "session_id": self.session_id,
            "timestamp": self.timestamp,
            **self.payload,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
