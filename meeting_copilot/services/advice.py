"""Advice collaborator: one short, actionable tip per utterance."""
from __future__ import annotations

import logging

from meeting_copilot.config import get_settings
from meeting_copilot.services.workers_ai import WorkersAIClient

logger = logging.getLogger(__name__)

ADVICE_UNAVAILABLE = "Advice service not available"
ADVICE_FAILED = "Unable to generate advice"

_SYSTEM_PROMPT = (
    "You are a helpful assistant providing brief, actionable advice based on conversation "
    "transcripts. Keep responses under 50 words."
)


class AdviceGenerator:
    def __init__(
        self,
        client: WorkersAIClient | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client or WorkersAIClient()
        self._model = model or settings.LLM_MODEL
        self._max_tokens = max_tokens or settings.ADVICE_MAX_TOKENS

    async def advise(self, text: str) -> str:
        if not self._client.configured:
            return ADVICE_UNAVAILABLE
        try:
            reply = await self._client.chat(
                self._model,
                _SYSTEM_PROMPT,
                f"Provide brief advice based on this transcript: {text}",
                max_tokens=self._max_tokens,
                temperature=0.7,
            )
        except Exception as e:
            logger.warning("Advice generation failed: %s", e)
            return ADVICE_FAILED
        return reply or "No advice generated."
