"""Pydantic schemas for API request/response."""
from meeting_copilot.schemas.session import (
    InsightOut,
    SessionRecordOut,
    SessionStatus,
    StartResponse,
    StopResponse,
    SummaryOut,
)

__all__ = [
    "InsightOut",
    "SessionRecordOut",
    "SessionStatus",
    "StartResponse",
    "StopResponse",
    "SummaryOut",
]
