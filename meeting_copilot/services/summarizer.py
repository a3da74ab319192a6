"""
Summarization collaborator: full transcript → summary, key points, action items.

Never fails the session close: any error yields a degraded placeholder.
"""
from __future__ import annotations

import logging

from meeting_copilot.config import get_settings
from meeting_copilot.services.workers_ai import WorkersAIClient, extract_json_object
from meeting_copilot.transcript.models import SessionSummary

logger = logging.getLogger(__name__)

SUMMARY_UNAVAILABLE = "Summary service not available"
SUMMARY_FAILED = "Unable to generate summary"

_SYSTEM_PROMPT = (
    "Summarize meetings with key points and action items. Respond in JSON only, exactly: "
    '{"summary": "...", "keyPoints": ["..."], "actionItems": ["..."]}'
)


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


class Summarizer:
    def __init__(
        self,
        client: WorkersAIClient | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client or WorkersAIClient()
        self._model = model or settings.LLM_MODEL
        self._max_tokens = max_tokens or settings.SUMMARY_MAX_TOKENS

    async def summarize(self, transcript: str) -> SessionSummary:
        if not self._client.configured:
            return SessionSummary(summary=SUMMARY_UNAVAILABLE, degraded=True)
        try:
            content = await self._client.chat(
                self._model,
                _SYSTEM_PROMPT,
                transcript,
                max_tokens=self._max_tokens,
                temperature=0.5,
            )
            data = extract_json_object(content)
        except Exception as e:
            logger.warning("Summary generation failed: %s", e)
            return SessionSummary(summary=SUMMARY_FAILED, degraded=True)
        return SessionSummary(
            summary=str(data.get("summary") or "No summary available").strip(),
            key_points=_string_list(data.get("keyPoints", data.get("key_points"))),
            action_items=_string_list(data.get("actionItems", data.get("action_items"))),
        )
