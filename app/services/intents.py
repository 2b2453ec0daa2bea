"""
Keyword-overlap intent classification for chatbot messages
"""
import re
from typing import List

from app.models.engine import Entities, Intent, UNKNOWN_INTENT
from app.models.settings import Catalog, EngineSettings
from app.services.catalog import get_catalog, get_settings

DATE_RE = re.compile(
    r"\b(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}(?:/\d{2,4})?|"
    r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?|"
    r"\d{1,2}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*|"
    r"today|tomorrow|yesterday|next\s+(?:week|month|year|monday|tuesday|wednesday|thursday|friday)|"
    r"monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.IGNORECASE,
)
NUMBER_RE = re.compile(r"\b\d+(?:\.\d+)?\b")


def intent_scores(query: str, catalog: Catalog) -> List[Intent]:
    lowered = (query or "").lower()
    return [
        Intent(
            category=definition.category,
            confidence=sum(1 for k in definition.keywords if k in lowered) / len(definition.keywords),
        )
        for definition in catalog.intents
    ]


def classify(query: str, catalog: Catalog = None, settings: EngineSettings = None) -> Intent:
    """Best-matching intent; ties go to the category declared first, weak matches are unknown."""
    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    if not isinstance(query, str) or not query.strip():
        return Intent(category=UNKNOWN_INTENT, confidence=0.0)

    best = None
    for candidate in intent_scores(query, catalog):
        if best is None or candidate.confidence > best.confidence:
            best = candidate

    if best is None or best.confidence <= settings.thresholds.intent_confidence:
        return Intent(category=UNKNOWN_INTENT, confidence=0.0)
    return best


def extract_entities(query: str) -> Entities:
    if not isinstance(query, str):
        return Entities()
    date_matches = list(DATE_RE.finditer(query))
    spans = [m.span() for m in date_matches]
    # digits that are part of a matched date are not separate numbers
    numbers = [
        m.group(0) for m in NUMBER_RE.finditer(query)
        if not any(m.start() < end and start < m.end() for start, end in spans)
    ]
    return Entities(dates=[m.group(0) for m in date_matches], numbers=numbers)
