"""
EnrichmentStep: sentiment and advice for one utterance, requested concurrently.

Collaborators already degrade to defaults; any exception that still escapes one of them
is replaced by the same default here so enrichment itself never fails.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from meeting_copilot.services.advice import ADVICE_FAILED
from meeting_copilot.transcript.models import NEUTRAL_SENTIMENT, Insight, Sentiment, unix_ms

logger = logging.getLogger(__name__)


class SentimentService(Protocol):
    async def classify(self, text: str) -> Sentiment: ...


class AdviceService(Protocol):
    async def advise(self, text: str) -> str: ...


class EnrichmentStep:
    def __init__(self, sentiment: SentimentService, advice: AdviceService) -> None:
        self._sentiment = sentiment
        self._advice = advice

    async def enrich(self, text: str, sequence: int, timestamp: int | None = None) -> Insight:
        sentiment, advice = await asyncio.gather(
            self._sentiment.classify(text),
            self._advice.advise(text),
            return_exceptions=True,
        )
        if isinstance(sentiment, BaseException):
            if isinstance(sentiment, asyncio.CancelledError):
                raise sentiment
            logger.warning("Sentiment collaborator raised: %s", sentiment)
            sentiment = NEUTRAL_SENTIMENT
        if isinstance(advice, BaseException):
            if isinstance(advice, asyncio.CancelledError):
                raise advice
            logger.warning("Advice collaborator raised: %s", advice)
            advice = ADVICE_FAILED
        return Insight(
            sequence=sequence,
            text=text,
            sentiment=sentiment.label,
            sentiment_score=sentiment.score,
            advice=advice,
            timestamp=timestamp if timestamp is not None else unix_ms(),
        )
