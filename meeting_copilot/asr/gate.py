"""
TranscriptionGate: decides whether an utterance is worth a transcription call.

Frame-level activity can fire on short transients (a door, a cough), so the whole buffer
is checked again: long enough (MIN_UTTERANCE_MS) and loud enough on average
(MIN_SPEECH_ENERGY). Rejections are normal drops, not errors.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from meeting_copilot.asr.orchestrator import TranscriptionOrchestrator
from meeting_copilot.audio.segmenter import UtteranceBuffer
from meeting_copilot.audio.wav import pcm_to_wav
from meeting_copilot.config import get_settings

logger = logging.getLogger(__name__)

REASON_OK = "ok"
REASON_TOO_SHORT = "too_short"
REASON_NO_SPEECH_ENERGY = "no_speech_energy"


@dataclass(frozen=True)
class GateDecision:
    passed: bool
    reason: str
    duration_ms: float
    energy: float


class TranscriptionGate:
    def __init__(
        self,
        orchestrator: TranscriptionOrchestrator,
        min_utterance_ms: float | None = None,
        min_speech_energy: float | None = None,
    ) -> None:
        settings = get_settings()
        self._orchestrator = orchestrator
        self._min_ms = min_utterance_ms if min_utterance_ms is not None else settings.MIN_UTTERANCE_MS
        self._min_energy = min_speech_energy if min_speech_energy is not None else settings.MIN_SPEECH_ENERGY

    def admit(self, buffer: UtteranceBuffer) -> GateDecision:
        duration_ms = buffer.byte_length / 2 / buffer.sample_rate * 1000
        energy = buffer.average_energy
        if duration_ms < self._min_ms:
            return GateDecision(False, REASON_TOO_SHORT, duration_ms, energy)
        if energy < self._min_energy:
            return GateDecision(False, REASON_NO_SPEECH_ENERGY, duration_ms, energy)
        return GateDecision(True, REASON_OK, duration_ms, energy)

    async def submit(self, buffer: UtteranceBuffer) -> str:
        """Admit and, on pass, transcribe. Rejected buffers yield ""."""
        decision = self.admit(buffer)
        if not decision.passed:
            logger.debug(
                "Utterance #%d dropped: %s (%.0f ms, energy %.0f)",
                buffer.sequence,
                decision.reason,
                decision.duration_ms,
                decision.energy,
            )
            return ""
        wav = pcm_to_wav(buffer.pcm, buffer.sample_rate)
        return await self._orchestrator.transcribe(buffer.pcm, wav)
