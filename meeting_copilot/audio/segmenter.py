"""
UtteranceSegmenter: pause-based utterance boundaries plus the session silence timer.

- Only active frames are buffered; inactive frames just advance the stream clock.
- An utterance is emitted on the first inactive frame that puts the gap since the last
  active frame at or above PAUSE_THRESHOLD.
- Pause decisions use stream time (samples consumed), so they are exact and do not depend
  on how frames are scheduled.
- The silence timer is wall-clock (asyncio call_later): it must fire even when no frames
  arrive at all. It fires once, disarms itself, and leaves the speech buffer alone; the
  lifecycle manager force-flushes afterwards.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np

from meeting_copilot.audio.vad import FrameClassifier
from meeting_copilot.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UtteranceBuffer:
    """Immutable run of active frames handed downstream on a boundary."""

    pcm: bytes
    sample_rate: int
    sequence: int  # segmentation order within the session

    @property
    def byte_length(self) -> int:
        return len(self.pcm)

    @property
    def sample_count(self) -> int:
        return len(self.pcm) // 2

    @property
    def duration_ms(self) -> float:
        return self.byte_length / 2 / self.sample_rate * 1000

    @property
    def average_energy(self) -> float:
        if self.sample_count == 0:
            return 0.0
        samples = np.frombuffer(self.pcm[: self.sample_count * 2], dtype="<i2")
        return float(np.abs(samples.astype(np.int32)).mean())


class UtteranceSegmenter:
    """
    Consumes AudioFrames, emits UtteranceBuffers on pause, owns the silence timer.

    on_utterance: optional callback for every pause-terminated buffer (on_frame also returns it).
    on_silence: called once when the silence timer fires.
    """

    def __init__(
        self,
        classifier: FrameClassifier | None = None,
        on_utterance: Callable[[UtteranceBuffer], None] | None = None,
        on_silence: Callable[[], None] | None = None,
        sample_rate: int | None = None,
        pause_threshold_sec: float | None = None,
        silence_threshold_sec: float | None = None,
    ) -> None:
        settings = get_settings()
        self._classifier = classifier or FrameClassifier()
        self._on_utterance = on_utterance
        self._on_silence = on_silence
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        pause = pause_threshold_sec if pause_threshold_sec is not None else settings.PAUSE_THRESHOLD_SECONDS
        self._silence_sec = (
            silence_threshold_sec if silence_threshold_sec is not None else settings.SILENCE_THRESHOLD_SECONDS
        )
        # Stream clock in samples; pause threshold rounded to whole samples
        self._pause_samples = int(round(pause * self._sample_rate))

        self._speech: list[bytes] = []
        self._position = 0
        self._last_speech_at: int | None = None
        self._sequence = 0
        self._timer: asyncio.TimerHandle | None = None
        self._armed = False

    # --- frames ---

    def on_frame(self, frame: bytes) -> UtteranceBuffer | None:
        """Classify one frame; returns a completed buffer when a pause closes an utterance."""
        usable = frame[: len(frame) - (len(frame) % 2)]
        self._position += len(usable) // 2

        if self._classifier.classify(usable).active:
            self._speech.append(usable)
            self._last_speech_at = self._position
            if self._armed:
                self._schedule_timer()
            return None

        if not self._speech or self._last_speech_at is None:
            return None
        if self._position - self._last_speech_at < self._pause_samples:
            return None

        buffer = self._take()
        logger.debug(
            "Utterance #%d closed by pause (%.0f ms of speech)", buffer.sequence, buffer.duration_ms
        )
        if self._on_utterance is not None:
            self._on_utterance(buffer)
        return buffer

    def flush(self) -> UtteranceBuffer | None:
        """Forced flush of buffered speech. None when nothing is buffered."""
        if not self._speech:
            return None
        buffer = self._take()
        logger.debug("Utterance #%d force-flushed (%.0f ms)", buffer.sequence, buffer.duration_ms)
        return buffer

    def _take(self) -> UtteranceBuffer:
        buffer = UtteranceBuffer(
            pcm=b"".join(self._speech),
            sample_rate=self._sample_rate,
            sequence=self._sequence,
        )
        self._sequence += 1
        self._speech = []
        return buffer

    # --- silence timer ---

    def arm(self) -> None:
        """Start (or restart) the silence countdown. Needs a running event loop."""
        self._armed = True
        self._schedule_timer()

    def disarm(self) -> None:
        self._armed = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._silence_sec, self._fire_silence)

    def _fire_silence(self) -> None:
        self._timer = None
        self._armed = False
        logger.info("Silence detected (%.0fs without speech)", self._silence_sec)
        if self._on_silence is not None:
            self._on_silence()

    def reset(self) -> None:
        """Clear buffered speech and stream clock; disarm the timer."""
        self.disarm()
        self._speech = []
        self._position = 0
        self._last_speech_at = None
        self._sequence = 0

    # --- introspection ---

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def buffered_frames(self) -> int:
        return len(self._speech)

    @property
    def last_speech_at(self) -> float | None:
        if self._last_speech_at is None:
            return None
        return self._last_speech_at / self._sample_rate