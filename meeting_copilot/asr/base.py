"""
ASREngine: abstract interface for one transcription strategy.

Implementations: LocalWhisperEngine (faster-whisper), CloudflareWhisperEngine (remote).
The orchestrator tries them in order; every engine returns plain text ("" = nothing heard)
and runs heavy or blocking work in an executor so the event loop stays free.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class ASREngine(ABC):
    """
    One transcription strategy. Receives both forms of the admitted utterance:
    raw PCM (16-bit mono) and the same audio wrapped in a WAV container.
    """

    name: str = "asr"

    @property
    @abstractmethod
    def available(self) -> bool:
        """False when the engine cannot be used (model not loaded, credentials missing)."""
        ...

    @abstractmethod
    async def transcribe(self, pcm: bytes, wav: bytes) -> str:
        """
        Transcribe one utterance. May raise on failure; the orchestrator
        turns failures into "" and moves on to the next engine.
        """
        ...
