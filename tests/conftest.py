"""Pytest configuration helpers and collaborator fakes shared by the tests."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Callable

import numpy as np


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without installing the package."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from meeting_copilot.asr.base import ASREngine  # noqa: E402
from meeting_copilot.asr.gate import TranscriptionGate  # noqa: E402
from meeting_copilot.asr.orchestrator import TranscriptionOrchestrator  # noqa: E402
from meeting_copilot.audio.vad import FrameClassifier  # noqa: E402
from meeting_copilot.services.enrichment import EnrichmentStep  # noqa: E402
from meeting_copilot.session_manager import SessionManager  # noqa: E402
from meeting_copilot.session_store import SessionStore  # noqa: E402
from meeting_copilot.transcript.models import Sentiment, SessionSummary  # noqa: E402

SAMPLE_RATE = 16_000
FRAME_SAMPLES = 320  # 20 ms


def speech_frame(amplitude: int = 3000, samples: int = FRAME_SAMPLES) -> bytes:
    """Square wave whose mean |amplitude| is exactly `amplitude`."""
    pattern = np.tile(np.array([amplitude, -amplitude], dtype="<i2"), samples // 2)
    return pattern.tobytes()


def silent_frame(samples: int = FRAME_SAMPLES) -> bytes:
    return np.zeros(samples, dtype="<i2").tobytes()


def frame_amplitude(pcm: bytes) -> int:
    return int(abs(int(np.frombuffer(pcm[:2], dtype="<i2")[0])))


class FakeEngine(ASREngine):
    """ASR engine returning scripted text; records calls."""

    def __init__(
        self,
        name: str = "fake",
        text: str | Callable[[bytes], str] = "",
        available: bool = True,
        error: Exception | None = None,
        delay: float | Callable[[bytes], float] = 0.0,
    ) -> None:
        self.name = name
        self._text = text
        self._available = available
        self._error = error
        self._delay = delay
        self.calls: list[tuple[bytes, bytes]] = []

    @property
    def available(self) -> bool:
        return self._available

    async def transcribe(self, pcm: bytes, wav: bytes) -> str:
        self.calls.append((pcm, wav))
        delay = self._delay(pcm) if callable(self._delay) else self._delay
        if delay:
            await asyncio.sleep(delay)
        if self._error is not None:
            raise self._error
        return self._text(pcm) if callable(self._text) else self._text


class FakeSentiment:
    """Per-text delays let tests reverse completion order."""

    def __init__(self, delays: dict[str, float] | None = None, label: str = "positive") -> None:
        self._delays = delays or {}
        self._label = label
        self.completed: list[str] = []

    async def classify(self, text: str) -> Sentiment:
        delay = self._delays.get(text, 0.0)
        if delay:
            await asyncio.sleep(delay)
        self.completed.append(text)
        return Sentiment(label=self._label, score=0.9)


class FakeAdvice:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def advise(self, text: str) -> str:
        self.calls.append(text)
        return f"advice for {text}"


class FakeSummarizer:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def summarize(self, transcript: str) -> SessionSummary:
        self.calls.append(transcript)
        return SessionSummary(summary=f"summary of {len(transcript.split())} words", key_points=["k"], action_items=["a"])


# Amplitude → text, so each utterance can be told apart by the engine
AMPLITUDE_TEXT = {2000: "first", 3000: "second", 4000: "third"}


def amplitude_text(pcm: bytes) -> str:
    return AMPLITUDE_TEXT.get(frame_amplitude(pcm), "unknown")


def make_manager(
    tmp_path: Path,
    engine: ASREngine | None = None,
    sentiment: FakeSentiment | None = None,
    summarizer: FakeSummarizer | None = None,
    pause_threshold_sec: float = 0.1,
    silence_threshold_sec: float = 30.0,
    forced_flush_timeout: float = 2.0,
) -> SessionManager:
    engine = engine or FakeEngine(text=amplitude_text)
    orchestrator = TranscriptionOrchestrator([engine], timeout=5.0)
    return SessionManager(
        gate=TranscriptionGate(orchestrator, min_utterance_ms=100, min_speech_energy=500),
        enrichment=EnrichmentStep(sentiment or FakeSentiment(), FakeAdvice()),
        summarizer=summarizer or FakeSummarizer(),
        store=SessionStore(transcript_dir=str(tmp_path), save_enabled=False),
        classifier=FrameClassifier(threshold=1000, mode="energy", sample_rate=SAMPLE_RATE),
        pause_threshold_sec=pause_threshold_sec,
        silence_threshold_sec=silence_threshold_sec,
        forced_flush_timeout=forced_flush_timeout,
    )


def utterance_frames(amplitude: int, speech_frames: int = 10, pause_frames: int = 5) -> list[bytes]:
    """Speech run followed by a pause long enough (5 x 20 ms = 0.1 s) to close it."""
    return [speech_frame(amplitude)] * speech_frames + [silent_frame()] * pause_frames
