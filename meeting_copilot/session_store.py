"""
Session persistence. session_id is generated here (backend only).

In memory: every session created in this process, with its accepted insights and, after
close, its SessionRecord. On disk (SESSION_SAVE_ENABLED): append-only insight log
{TRANSCRIPT_DIR}/{id}.txt and the closed record {TRANSCRIPT_DIR}/{id}.json.
Only the session manager writes here; HTTP handlers only read.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from typing import Any

from meeting_copilot.config import get_settings
from meeting_copilot.transcript.models import Insight, SessionRecord, SessionSummary, unix_ms
from meeting_copilot.transcript.writer import InsightWriterBase, create_insight_writer

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """UUID hex, 12 chars."""
    return uuid.uuid4().hex[:12]


def _write_json_sync(path: str, payload: dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


class SessionStore:
    def __init__(self, transcript_dir: str | None = None, save_enabled: bool | None = None) -> None:
        settings = get_settings()
        self._transcript_dir = transcript_dir or settings.TRANSCRIPT_DIR
        self._save_enabled = save_enabled if save_enabled is not None else settings.SESSION_SAVE_ENABLED
        # session_id -> {"started_at", "ended_at", "insights", "record"}
        self._sessions: dict[str, dict[str, Any]] = {}
        self._writers: dict[str, InsightWriterBase] = {}

    async def create_session(self) -> str:
        session_id = generate_session_id()
        started_at = unix_ms()
        self._sessions[session_id] = {
            "started_at": started_at,
            "ended_at": None,
            "insights": [],
            "record": None,
        }
        if self._save_enabled:
            writer = create_insight_writer(
                session_id, started_at, transcript_dir=self._transcript_dir, enabled=True
            )
            await writer.start()
            self._writers[session_id] = writer
        logger.info("Session %s created", session_id)
        return session_id

    def append_insight(self, session_id: str, insight: Insight) -> None:
        entry = self._sessions.get(session_id)
        if entry is None:
            logger.warning("append_insight for unknown session %s", session_id)
            return
        entry["insights"].append(insight)
        writer = self._writers.get(session_id)
        if writer is not None:
            writer.append(insight)

    async def close_session(
        self,
        session_id: str,
        transcript: str,
        summary: SessionSummary | None,
        end_reason: str = "stop",
        notes: list[str] | None = None,
    ) -> SessionRecord:
        """Build and keep the SessionRecord. Empty transcript: only the end time is recorded."""
        entry = self._sessions.setdefault(
            session_id,
            {"started_at": unix_ms(), "ended_at": None, "insights": [], "record": None},
        )
        ended_at = unix_ms()
        entry["ended_at"] = ended_at
        record = SessionRecord(
            session_id=session_id,
            started_at=entry["started_at"],
            ended_at=ended_at,
            transcript=transcript,
            insights=list(entry["insights"]),
            summary=summary,
            end_reason=end_reason,
            notes=list(notes or []),
        )
        entry["record"] = record

        writer = self._writers.pop(session_id, None)
        if writer is not None:
            await writer.close()
        if self._save_enabled and transcript.strip():
            path = os.path.join(self._transcript_dir, f"{session_id}.json")
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, _write_json_sync, path, record.to_dict())
                logger.info("Session record saved: %s", path)
            except OSError as e:
                logger.warning("Failed to save session record %s: %s", path, e)
        return record

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Closed record, or None for unknown / still-open sessions."""
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        return entry["record"]

    def list_sessions(self, limit: int | None = None) -> list[SessionRecord]:
        """Closed sessions, most recent first."""
        limit = limit if limit is not None else get_settings().SESSION_HISTORY_LIMIT
        # creation index breaks ties between sessions started in the same millisecond
        ordered = [
            (e["record"].started_at, idx, e["record"])
            for idx, e in enumerate(self._sessions.values())
            if e["record"] is not None
        ]
        ordered.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [record for _, _, record in ordered[: max(0, limit)]]
