"""Pydantic schemas for the session HTTP API."""
from __future__ import annotations

from pydantic import BaseModel, Field


class InsightOut(BaseModel):
    sequence: int
    text: str
    sentiment: str = Field(..., description="positive | neutral | negative")
    sentiment_score: float = Field(..., ge=0.0, le=1.0)
    advice: str
    timestamp: int = Field(..., description="unix ms")


class SummaryOut(BaseModel):
    summary: str
    key_points: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    degraded: bool = Field(False, description="True when the summary is a placeholder")


class SessionRecordOut(BaseModel):
    session_id: str
    started_at: int
    ended_at: int
    transcript: str
    insights: list[InsightOut] = Field(default_factory=list)
    summary: SummaryOut | None = None
    end_reason: str = Field("stop", description="silence | stop | shutdown")
    notes: list[str] = Field(default_factory=list, description="Partial-success notes, e.g. dropped utterances")


class StartResponse(BaseModel):
    session_id: str
    state: str


class StopResponse(BaseModel):
    """Closed record; session_id is null when nothing was recording."""

    session_id: str | None = None
    record: SessionRecordOut | None = None


class SessionStatus(BaseModel):
    state: str = Field(..., description="idle | recording | ending | closed")
    session_id: str | None = None
    transcript: str = ""
    insights: list[InsightOut] = Field(default_factory=list)
