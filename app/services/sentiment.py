import re

from app.models.engine import SentimentResult
from app.models.settings import Catalog
from app.services.catalog import get_catalog

TOKEN_RE = re.compile(r"[a-z']+")


def analyze_sentiment(text: str, catalog: Catalog = None) -> SentimentResult:
    """Word-count sentiment: +1 per positive word, -1 per negative word, scaled by length"""
    catalog = catalog or get_catalog()
    tokens = TOKEN_RE.findall((text or "").lower())
    if not tokens:
        return SentimentResult(score=0.0, sentiment="neutral", confidence=0.0, tokens=[])

    positive = set(catalog.sentiment.positive)
    negative = set(catalog.sentiment.negative)
    raw = sum(1 for t in tokens if t in positive) - sum(1 for t in tokens if t in negative)
    value = max(-1.0, min(1.0, raw / len(tokens) * 10))

    if value > 0.1:
        label = "positive"
    elif value < -0.1:
        label = "negative"
    else:
        label = "neutral"
    return SentimentResult(score=round(value, 4), sentiment=label, confidence=round(abs(value), 4), tokens=tokens)
