"""
TranscriptionOrchestrator: ordered fallback across ASR engines.

Engines are tried in order (local first, then remote); the first non-empty text wins.
Unavailable engines are skipped, failures and timeouts count as "" for that engine.
transcribe() never raises (cancellation excepted).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from meeting_copilot.asr.base import ASREngine
from meeting_copilot.asr.cloudflare import CloudflareWhisperEngine
from meeting_copilot.asr.local_whisper import LocalWhisperEngine, WhisperModelT
from meeting_copilot.config import get_settings

logger = logging.getLogger(__name__)


class TranscriptionOrchestrator:
    """Uniform text-or-empty result over an ordered list of engines."""

    def __init__(self, engines: Sequence[ASREngine], timeout: float | None = None) -> None:
        self._engines = list(engines)
        self._timeout = timeout if timeout is not None else get_settings().TRANSCRIBE_TIMEOUT_SECONDS

    @property
    def engines(self) -> list[ASREngine]:
        return list(self._engines)

    async def transcribe(self, pcm: bytes, wav: bytes) -> str:
        attempted = False
        for engine in self._engines:
            if not engine.available:
                continue
            attempted = True
            try:
                text = await asyncio.wait_for(engine.transcribe(pcm, wav), timeout=self._timeout)
            except asyncio.TimeoutError:
                logger.warning("Transcription engine %s timed out after %.1fs", engine.name, self._timeout)
                continue
            except Exception as e:
                logger.warning("Transcription engine %s failed: %s", engine.name, e)
                continue
            text = (text or "").strip()
            if text:
                logger.info("Transcribed via %s: %r", engine.name, text[:60])
                return text
            logger.debug("Transcription engine %s returned empty text", engine.name)

        if not attempted:
            logger.warning("No transcription service available")
        return ""


def build_engines(whisper_model: WhisperModelT | None = None) -> list[ASREngine]:
    """Engine order from ASR_BACKEND: auto = local then cloudflare."""
    backend = get_settings().ASR_BACKEND
    engines: list[ASREngine] = []
    if backend in ("auto", "local"):
        engines.append(LocalWhisperEngine(model=whisper_model))
    if backend in ("auto", "cloudflare"):
        engines.append(CloudflareWhisperEngine())
    return engines
