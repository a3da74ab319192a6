"""
SessionManager: the one recording session of this process, from start to summary.

States: idle → recording → ending → closed (→ idle on the next start).

- Frames are fed synchronously; each pause-terminated utterance becomes a background task
  (gate → transcription → enrichment) so ingestion never waits on a collaborator.
- Append order: tasks are queued in segmentation order and a single appender awaits them
  in that order. A slow first utterance therefore still lands before a fast second one.
- Ending (silence timer or stop): timer disarmed, buffered speech force-flushed through the
  same path, in-flight utterances drained within FORCED_FLUSH_TIMEOUT_SECONDS. Whatever is
  still running at the deadline is cancelled and reported as a note on the closed record;
  utterances that already finished behind it are still appended, in order.
- Only this class mutates the transcript.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from meeting_copilot.asr.gate import TranscriptionGate
from meeting_copilot.asr.local_whisper import WhisperModelT
from meeting_copilot.asr.orchestrator import TranscriptionOrchestrator, build_engines
from meeting_copilot.audio.segmenter import UtteranceBuffer, UtteranceSegmenter
from meeting_copilot.audio.vad import FrameClassifier
from meeting_copilot.config import get_settings
from meeting_copilot.events import (
    SESSION_CLOSED,
    SESSION_ENDING,
    SESSION_STARTED,
    UTTERANCE_READY,
    SessionEvent,
)
from meeting_copilot.services.advice import AdviceGenerator
from meeting_copilot.services.enrichment import EnrichmentStep
from meeting_copilot.services.sentiment import SentimentClassifier
from meeting_copilot.services.summarizer import SUMMARY_FAILED, Summarizer
from meeting_copilot.session_store import SessionStore
from meeting_copilot.transcript.models import Insight, SessionRecord, SessionSummary, Transcript, unix_ms

logger = logging.getLogger(__name__)

EventListener = Callable[[SessionEvent], Awaitable[None]]


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    ENDING = "ending"
    CLOSED = "closed"


class SummaryService(Protocol):
    async def summarize(self, transcript: str) -> SessionSummary: ...


class SessionManager:
    def __init__(
        self,
        gate: TranscriptionGate,
        enrichment: EnrichmentStep,
        summarizer: SummaryService,
        store: SessionStore,
        classifier: FrameClassifier | None = None,
        pause_threshold_sec: float | None = None,
        silence_threshold_sec: float | None = None,
        forced_flush_timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._gate = gate
        self._enrichment = enrichment
        self._summarizer = summarizer
        self._store = store
        self._flush_timeout = (
            forced_flush_timeout if forced_flush_timeout is not None else settings.FORCED_FLUSH_TIMEOUT_SECONDS
        )
        self._segmenter = UtteranceSegmenter(
            classifier=classifier,
            on_silence=self._on_silence,
            pause_threshold_sec=pause_threshold_sec,
            silence_threshold_sec=silence_threshold_sec,
        )

        self._state = SessionState.IDLE
        self._session_id: str | None = None
        self._transcript = Transcript()
        self._queue: asyncio.Queue[asyncio.Task | None] = asyncio.Queue()
        self._inflight: set[asyncio.Task] = set()
        self._appender: asyncio.Task | None = None
        self._awaiting: asyncio.Task | None = None
        self._close_task: asyncio.Task | None = None
        self._start_lock = asyncio.Lock()
        self._listeners: list[EventListener] = []

    # --- read side ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def transcript(self) -> list[Insight]:
        return self._transcript.insights

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "session_id": self._session_id,
            "transcript": self._transcript.text,
            "insights": [i.to_dict() for i in self._transcript.insights],
        }

    # --- events ---

    def subscribe(self, listener: EventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _emit(self, event_type: str, session_id: str, payload: dict[str, Any] | None = None) -> None:
        event = SessionEvent(type=event_type, session_id=session_id, payload=payload or {})
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.warning("Event listener failed on %s: %s", event_type, e)

    # --- commands ---

    async def start(self) -> str:
        """Start a session, or return the id of the one already recording."""
        async with self._start_lock:
            if self._state is SessionState.RECORDING and self._session_id is not None:
                logger.info("Start ignored: session %s already recording", self._session_id)
                return self._session_id
            if self._state is SessionState.ENDING and self._close_task is not None:
                await asyncio.shield(self._close_task)
            if self._state is SessionState.CLOSED:
                self._state = SessionState.IDLE

            session_id = await self._store.create_session()
            self._session_id = session_id
            self._transcript.clear()
            self._inflight = set()
            self._queue = asyncio.Queue()
            self._close_task = None
            self._segmenter.reset()
            self._segmenter.arm()
            self._appender = asyncio.create_task(self._append_worker(session_id, self._queue))
            self._state = SessionState.RECORDING
            logger.info("Session %s recording", session_id)

        await self._emit(SESSION_STARTED, session_id)
        return session_id

    def feed(self, frame: bytes) -> None:
        """One AudioFrame. Ignored unless recording."""
        if self._state is not SessionState.RECORDING:
            return
        buffer = self._segmenter.on_frame(frame)
        if buffer is not None:
            self._dispatch(buffer)

    async def stop(self, reason: str = "stop") -> SessionRecord | None:
        """Explicit stop. No-op (None, no events) when nothing is recording or ending."""
        if self._state in (SessionState.IDLE, SessionState.CLOSED):
            return None
        task = self._begin_ending(reason)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def teardown(self) -> None:
        """Close any active session (reason "shutdown") and disarm timers."""
        if self._state is SessionState.RECORDING:
            await self.stop(reason="shutdown")
        elif self._state is SessionState.ENDING and self._close_task is not None:
            await asyncio.shield(self._close_task)
        self._segmenter.reset()

    # --- pipeline ---

    def _dispatch(self, buffer: UtteranceBuffer) -> None:
        task = asyncio.create_task(self._process(buffer, unix_ms()))
        self._inflight.add(task)
        self._queue.put_nowait(task)

    async def _process(self, buffer: UtteranceBuffer, timestamp: int) -> Insight | None:
        text = await self._gate.submit(buffer)
        if not text:
            return None
        return await self._enrichment.enrich(text, buffer.sequence, timestamp)

    async def _append_worker(self, session_id: str, queue: asyncio.Queue) -> None:
        """Sole writer of the transcript; consumes utterance tasks in segmentation order."""
        while True:
            task = await queue.get()
            if task is None:
                break
            self._awaiting = task
            try:
                insight = await task
            except Exception as e:
                logger.warning("Utterance processing failed in session %s: %s", session_id, e)
                insight = None
            finally:
                self._awaiting = None
                self._inflight.discard(task)
            if insight is not None:
                await self._accept(session_id, insight)

    async def _accept(self, session_id: str, insight: Insight) -> None:
        self._transcript.append(insight)
        self._store.append_insight(session_id, insight)
        await self._emit(UTTERANCE_READY, session_id, {"insight": insight.to_dict()})

    async def _salvage(self, session_id: str, backlog: list[asyncio.Task]) -> int:
        """
        After the flush deadline: in order, keep utterances that already finished and
        cancel the rest. Returns how many were cancelled unfinished.
        """
        dropped: list[asyncio.Task] = []
        for task in backlog:
            self._inflight.discard(task)
            if not task.done() or task.cancelled():
                task.cancel()
                dropped.append(task)
                continue
            if task.exception() is not None:
                logger.warning("Utterance processing failed in session %s: %s", session_id, task.exception())
                continue
            insight = task.result()
            if insight is not None:
                await self._accept(session_id, insight)
        await asyncio.gather(*dropped, return_exceptions=True)
        return len(dropped)

    # --- ending ---

    def _on_silence(self) -> None:
        """Silence timer callback (event loop thread)."""
        if self._state is SessionState.RECORDING:
            self._begin_ending("silence")

    def _begin_ending(self, reason: str) -> asyncio.Task | None:
        """recording → ending, synchronously, so a second trigger sees ending and does nothing."""
        if self._state is SessionState.RECORDING:
            self._state = SessionState.ENDING
            self._segmenter.disarm()
            logger.info("Session %s ending (%s)", self._session_id, reason)
            self._close_task = asyncio.create_task(self._close(reason))
        return self._close_task

    async def _close(self, reason: str) -> SessionRecord:
        session_id = self._session_id or ""
        leftover = self._segmenter.flush()
        await self._emit(
            SESSION_ENDING,
            session_id,
            {"reason": reason, "forced_flush": leftover is not None or bool(self._inflight)},
        )
        if leftover is not None:
            self._dispatch(leftover)
        self._queue.put_nowait(None)

        notes: list[str] = []
        if self._appender is not None:
            _, pending = await asyncio.wait({self._appender}, timeout=self._flush_timeout)
            if pending:
                # the task the appender is blocked on, then everything still queued
                backlog = [self._awaiting] if self._awaiting is not None else []
                while not self._queue.empty():
                    task = self._queue.get_nowait()
                    if task is not None:
                        backlog.append(task)
                self._appender.cancel()
                await asyncio.gather(self._appender, return_exceptions=True)
                dropped = await self._salvage(session_id, backlog)
                if dropped:
                    notes.append(f"dropped {dropped} incomplete utterance(s)")
                logger.warning(
                    "Session %s: forced flush timed out after %.1fs, %d utterance(s) dropped",
                    session_id,
                    self._flush_timeout,
                    dropped,
                )
            self._appender = None
            self._inflight = set()

        transcript_text = self._transcript.text
        summary: SessionSummary | None = None
        if self._transcript:
            try:
                summary = await self._summarizer.summarize(transcript_text)
            except Exception as e:
                logger.warning("Summarizer raised for session %s: %s", session_id, e)
                summary = SessionSummary(summary=SUMMARY_FAILED, degraded=True)

        record = await self._store.close_session(
            session_id,
            transcript_text,
            summary,
            end_reason=reason,
            notes=notes,
        )
        self._segmenter.reset()
        self._state = SessionState.CLOSED
        logger.info("Session %s closed (%d utterances)", session_id, len(record.insights))
        await self._emit(SESSION_CLOSED, session_id, {"record": record.to_dict()})
        return record


def build_session_manager(
    whisper_model: WhisperModelT | None = None,
    store: SessionStore | None = None,
) -> SessionManager:
    """Wire the default collaborators from settings."""
    orchestrator = TranscriptionOrchestrator(build_engines(whisper_model))
    return SessionManager(
        gate=TranscriptionGate(orchestrator),
        enrichment=EnrichmentStep(SentimentClassifier(), AdviceGenerator()),
        summarizer=Summarizer(),
        store=store or SessionStore(),
    )
