"""
Frame classifier: speech vs non-speech on one PCM frame.

Energy rule: mean absolute amplitude of the int16 samples above ENERGY_THRESHOLD.
Optional webrtcvad mode (VAD_MODE=webrtc) also requires webrtcvad to call the frame
speech, which suppresses loud non-speech noise.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import webrtcvad

from meeting_copilot.config import get_settings


@dataclass(frozen=True)
class FrameActivity:
    """Classifier verdict for one frame."""

    active: bool
    energy: float  # mean |sample|, int16 scale


def frame_energy(frame: bytes) -> float:
    """Mean absolute amplitude of 16-bit samples. Empty / sub-sample frames → 0.0."""
    usable = len(frame) - (len(frame) % 2)
    if usable < 2:
        return 0.0
    samples = np.frombuffer(frame[:usable], dtype="<i2")
    # int32 so abs(-32768) does not wrap
    return float(np.abs(samples.astype(np.int32)).mean())


def classify_frame(frame: bytes, threshold: float) -> FrameActivity:
    """Pure energy classification; never raises."""
    energy = frame_energy(frame)
    return FrameActivity(active=energy > threshold, energy=energy)


class FrameClassifier:
    """
    Configured classifier used by the segmenter.
    webrtc mode needs frames of exactly 10, 20 or 30 ms; any other size is inactive there.
    """

    def __init__(
        self,
        threshold: float | None = None,
        mode: str | None = None,
        aggressiveness: int | None = None,
        sample_rate: int | None = None,
    ) -> None:
        settings = get_settings()
        self._threshold = threshold if threshold is not None else settings.ENERGY_THRESHOLD
        self._mode = mode or settings.VAD_MODE
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        self._vad: webrtcvad.Vad | None = None
        if self._mode == "webrtc":
            level = aggressiveness if aggressiveness is not None else settings.VAD_AGGRESSIVENESS
            self._vad = webrtcvad.Vad(min(max(level, 0), 3))
        self._webrtc_sizes = {self._sample_rate * ms // 1000 * 2 for ms in (10, 20, 30)}

    def classify(self, frame: bytes) -> FrameActivity:
        activity = classify_frame(frame, self._threshold)
        if self._vad is None or not activity.active:
            return activity
        if len(frame) not in self._webrtc_sizes:
            return FrameActivity(active=False, energy=activity.energy)
        return FrameActivity(
            active=self._vad.is_speech(frame, self._sample_rate),
            energy=activity.energy,
        )

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def mode(self) -> str:
        return self._mode
