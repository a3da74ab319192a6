"""Session transcript: insights, records and the append-only insight log."""
from .models import Insight, SessionRecord, SessionSummary, Sentiment, Transcript
from .writer import InsightWriterBase, create_insight_writer

__all__ = [
    "Insight",
    "SessionRecord",
    "SessionSummary",
    "Sentiment",
    "Transcript",
    "InsightWriterBase",
    "create_insight_writer",
]
