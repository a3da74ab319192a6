"""
InsightWriter: session-based, append-only log of insights as they are accepted.

One line per insight, in transcript order, never rewritten. A worker task drains a queue
so file I/O never blocks the pipeline.
"""
from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from meeting_copilot.config import get_settings
from meeting_copilot.transcript.models import Insight

logger = logging.getLogger(__name__)


def _format_insight_line(insight: Insight, session_start_ms: int, add_timestamps: bool) -> str:
    """[MM:SS.ss] [sentiment] text  (timestamp = elapsed since session start)."""
    parts: list[str] = []
    if add_timestamps:
        elapsed_sec = max(0, insight.timestamp - session_start_ms) / 1000.0
        mm = int(elapsed_sec // 60)
        ss = elapsed_sec % 60
        parts.append(f"[{mm:02d}:{ss:05.2f}]")
    parts.append(f"[{insight.sentiment}]")
    parts.append(insight.text.strip())
    return " ".join(parts)


class InsightWriterBase(ABC):
    @abstractmethod
    async def start(self) -> None:
        """Open the log. Call once at session start."""
        ...

    @abstractmethod
    def append(self, insight: Insight) -> None:
        """Queue one line. Non-blocking."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Flush and close. Safe to call more than once."""
        ...


class NoOpInsightWriter(InsightWriterBase):
    """When session saving is disabled. No file I/O."""

    async def start(self) -> None:
        pass

    def append(self, insight: Insight) -> None:
        pass

    async def close(self) -> None:
        pass


class InsightWriter(InsightWriterBase):
    """One file per session: {TRANSCRIPT_DIR}/{session_id}.txt."""

    def __init__(
        self,
        session_id: str,
        session_start_ms: int,
        transcript_dir: Optional[str] = None,
        add_timestamps: Optional[bool] = None,
    ) -> None:
        settings = get_settings()
        self._session_id = session_id
        self._session_start_ms = session_start_ms
        self._transcript_dir = transcript_dir or settings.TRANSCRIPT_DIR
        self._add_timestamps = add_timestamps if add_timestamps is not None else settings.TRANSCRIPT_ADD_TIMESTAMPS
        self._path = os.path.join(self._transcript_dir, f"{session_id}.txt")
        self._file = None
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None
        self._started = False

    @property
    def path(self) -> str:
        return self._path

    async def _worker(self) -> None:
        """Drain queue: write each line and flush. None = close. Log errors, never crash."""
        while True:
            line = await self._queue.get()
            if line is None:
                break
            if self._file is None:
                continue
            try:
                self._file.write(line + "\n")
                self._file.flush()
            except OSError as e:
                logger.warning("Insight log write failed for %s: %s", self._path, e)
        try:
            if self._file is not None:
                self._file.close()
        except OSError as e:
            logger.warning("Insight log close failed for %s: %s", self._path, e)
        finally:
            self._file = None

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        try:
            os.makedirs(self._transcript_dir, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")
        except OSError as e:
            logger.warning("Insight log open failed for %s: %s", self._path, e)
        self._worker_task = asyncio.create_task(self._worker())

    def append(self, insight: Insight) -> None:
        if not insight.text.strip():
            return
        line = _format_insight_line(insight, self._session_start_ms, self._add_timestamps)
        self._queue.put_nowait(line)

    async def close(self) -> None:
        if not self._started or self._worker_task is None:
            return
        try:
            self._queue.put_nowait(None)
            await asyncio.wait_for(self._worker_task, timeout=5.0)
        except asyncio.TimeoutError:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None


def create_insight_writer(
    session_id: str,
    session_start_ms: int,
    transcript_dir: Optional[str] = None,
    enabled: Optional[bool] = None,
) -> InsightWriterBase:
    """Create writer when saving is enabled (default SESSION_SAVE_ENABLED); else no-op."""
    if enabled is None:
        enabled = get_settings().SESSION_SAVE_ENABLED
    if not enabled:
        return NoOpInsightWriter()
    return InsightWriter(session_id=session_id, session_start_ms=session_start_ms, transcript_dir=transcript_dir)
