"""
Session data: insights, the running transcript, summary and the closed-session record.
"""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field


def unix_ms() -> int:
    return int(time.time() * 1000)


SENTIMENT_LABELS = ("positive", "neutral", "negative")


@dataclass(frozen=True)
class Sentiment:
    label: str  # one of SENTIMENT_LABELS
    score: float  # 0.0–1.0


NEUTRAL_SENTIMENT = Sentiment(label="neutral", score=0.5)


@dataclass(frozen=True)
class Insight:
    """One transcribed utterance with its sentiment and advice."""

    sequence: int
    text: str
    sentiment: str
    sentiment_score: float
    advice: str
    timestamp: int  # unix_ms

    def to_dict(self) -> dict:
        return asdict(self)


class Transcript:
    """Append-only, ordered insights of the active session."""

    def __init__(self) -> None:
        self._insights: list[Insight] = []

    def append(self, insight: Insight) -> None:
        self._insights.append(insight)

    def clear(self) -> None:
        self._insights = []

    @property
    def insights(self) -> list[Insight]:
        return list(self._insights)

    @property
    def text(self) -> str:
        return " ".join(i.text for i in self._insights).strip()

    def __len__(self) -> int:
        return len(self._insights)

    def __bool__(self) -> bool:
        return bool(self._insights)


@dataclass
class SessionSummary:
    summary: str
    key_points: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)
    degraded: bool = False  # True for the placeholder returned on failure

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SessionRecord:
    """Built once, at session close."""

    session_id: str
    started_at: int
    ended_at: int
    transcript: str
    insights: list[Insight] = field(default_factory=list)
    summary: SessionSummary | None = None
    end_reason: str = "stop"  # silence | stop | shutdown
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "transcript": self.transcript,
            "insights": [i.to_dict() for i in self.insights],
            "summary": self.summary.to_dict() if self.summary else None,
            "end_reason": self.end_reason,
            "notes": list(self.notes),
        }
