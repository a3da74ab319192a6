"""Sentiment collaborator: Workers AI text classification, neutral on any failure."""
from __future__ import annotations

import logging

from meeting_copilot.config import get_settings
from meeting_copilot.services.workers_ai import WorkersAIClient
from meeting_copilot.transcript.models import NEUTRAL_SENTIMENT, Sentiment

logger = logging.getLogger(__name__)


class SentimentClassifier:
    """
    distilbert-sst-2 returns [{label: POSITIVE|NEGATIVE, score}, ...]. The top label is kept
    unless its score is below SENTIMENT_NEUTRAL_BELOW, in which case the text is neutral.
    """

    def __init__(
        self,
        client: WorkersAIClient | None = None,
        model: str | None = None,
        neutral_below: float | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client or WorkersAIClient()
        self._model = model or settings.SENTIMENT_MODEL
        self._neutral_below = neutral_below if neutral_below is not None else settings.SENTIMENT_NEUTRAL_BELOW

    async def classify(self, text: str) -> Sentiment:
        if not (text or "").strip() or not self._client.configured:
            return NEUTRAL_SENTIMENT
        try:
            result = await self._client.run(self._model, {"text": text})
            return self._parse(result)
        except Exception as e:
            logger.warning("Sentiment analysis failed: %s", e)
            return NEUTRAL_SENTIMENT

    def _parse(self, result: object) -> Sentiment:
        items = result if isinstance(result, list) else [result]
        scored = [
            (str(item.get("label", "")).lower(), float(item.get("score", 0.0)))
            for item in items
            if isinstance(item, dict)
        ]
        if not scored:
            return NEUTRAL_SENTIMENT
        label, score = max(scored, key=lambda pair: pair[1])
        score = min(1.0, max(0.0, score))
        if label not in ("positive", "negative", "neutral") or score < self._neutral_below:
            return Sentiment(label="neutral", score=score)
        return Sentiment(label=label, score=score)
