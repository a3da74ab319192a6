"""Enrichment collaborators (sentiment, advice, summary) over Cloudflare Workers AI."""
from meeting_copilot.services.advice import AdviceGenerator
from meeting_copilot.services.enrichment import EnrichmentStep
from meeting_copilot.services.sentiment import SentimentClassifier
from meeting_copilot.services.summarizer import Summarizer

__all__ = ["AdviceGenerator", "EnrichmentStep", "SentimentClassifier", "Summarizer"]
