"""
LocalWhisperEngine: transcription with a local faster-whisper model.

- Model loaded ONCE at startup (injected at construction); no model → unavailable.
- Audio: float32 mono [-1, 1] converted from the utterance PCM.
- Runs in executor so the event loop keeps ingesting frames.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from meeting_copilot.asr.base import ASREngine
from meeting_copilot.audio.wav import pcm_bytes_to_float32
from meeting_copilot.config import get_settings

logger = logging.getLogger(__name__)

# Type for shared WhisperModel (loaded at startup)
WhisperModelT = Any


def load_whisper_model() -> WhisperModelT | None:
    """Load faster-whisper once. Returns None (engine unavailable) when it cannot be loaded."""
    try:
        from faster_whisper import WhisperModel
    except ImportError:
        logger.warning(
            "faster-whisper is not installed; local transcription disabled. "
            "Install with: pip install faster-whisper"
        )
        return None
    settings = get_settings()
    try:
        model = WhisperModel(
            settings.LOCAL_WHISPER_MODEL,
            device=settings.LOCAL_WHISPER_DEVICE,
            compute_type=settings.LOCAL_WHISPER_COMPUTE_TYPE,
        )
    except Exception as e:
        logger.warning("Local Whisper model %s failed to load: %s", settings.LOCAL_WHISPER_MODEL, e)
        return None
    logger.info("Local Whisper model loaded: %s (%s)", settings.LOCAL_WHISPER_MODEL, settings.LOCAL_WHISPER_DEVICE)
    return model


class LocalWhisperEngine(ASREngine):
    """Local Whisper via faster-whisper. Uses a shared model instance."""

    name = "local"

    def __init__(self, model: WhisperModelT | None = None, language: str | None = None) -> None:
        settings = get_settings()
        self._model = model
        self._language = language if language is not None else settings.TRANSCRIBE_LANGUAGE
        self._beam_size = settings.LOCAL_WHISPER_BEAM_SIZE

    @property
    def available(self) -> bool:
        return self._model is not None

    def _transcribe_sync(self, pcm: bytes) -> str:
        """Synchronous decode; run from executor."""
        if self._model is None:
            return ""
        audio = pcm_bytes_to_float32(pcm)
        segments, _ = self._model.transcribe(
            audio,
            language=self._language or None,
            beam_size=self._beam_size,
            vad_filter=True,
            vad_parameters=dict(min_silence_duration_ms=300, speech_pad_ms=100),
            condition_on_previous_text=False,
        )
        parts = [(seg.text or "").strip() for seg in segments]
        return " ".join(p for p in parts if p).strip()

    async def transcribe(self, pcm: bytes, wav: bytes) -> str:
        """Run _transcribe_sync in executor. wav is unused: the model takes samples."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, pcm)
